"""Invoice domain service layer.

Owns numbering, persistence and the status-transition rules for invoices.
Routers pass plain dicts (``model_dump(exclude_unset=True)``) so a key that is
present means "supplied by the caller", even when its value is None.

Design goals:
 - Keep all DB persistence + business rules centralized.
 - Do not leak FastAPI/HTTP concerns (no HTTPException here). Raise domain exceptions instead.
 - Every write is a single transaction: header, items and subtotal commit together.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from typing import Any, Dict, List, Optional, Sequence
import logging
import math

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import Client, Invoice, InvoiceItem, InvoiceStatus
from ..utils.errors import ClientNotFound, InvoiceNotFound, ValidationError
from .totals import invoice_subtotal, line_total, portfolio_stats, PortfolioStats

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "Invoice-"
SEQUENCE_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
TIMESTAMP_FIELDS = ("paid_at", "advance_paid_at", "created_at")


def _today() -> date:
    """Local calendar date used for numbering and invoice_date."""
    return date.today()


def _now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


# ------------------------------- Numbering ---------------------------------- #


def format_invoice_number(today: date, existing_count: int) -> str:
    """Label for the next invoice of the day.

    The letter is the count of invoices already dated today; from the 27th
    invoice onwards every label ends in 'Z'.

    >>> format_invoice_number(date(2025, 3, 7), 0)
    'Invoice-250307A'
    >>> format_invoice_number(date(2025, 3, 7), 30)
    'Invoice-250307Z'
    """
    if existing_count < len(SEQUENCE_LETTERS):
        letter = SEQUENCE_LETTERS[existing_count]
    else:
        letter = SEQUENCE_LETTERS[-1]
    return f"{INVOICE_PREFIX}{today.strftime('%y%m%d')}{letter}"


async def next_invoice_number(db: AsyncSession, today: date) -> str:
    result = await db.execute(
        select(func.count()).select_from(Invoice).where(Invoice.invoice_date == today)
    )
    return format_invoice_number(today, int(result.scalar_one()))


def _checked_subtotal(items: Sequence[Dict[str, Any]]) -> float:
    subtotal = invoice_subtotal(items)
    if not math.isfinite(subtotal):
        raise ValidationError("Invoice total is out of range")
    return subtotal


# ------------------------------ Data shapes --------------------------------- #


@dataclass
class InvoiceBundle:
    invoice: Invoice
    client: Optional[Client]
    items: List[InvoiceItem] = field(default_factory=list)


def _build_items(invoice_id: int, items: Sequence[Dict[str, Any]]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            invoice_id=invoice_id,
            title=item.get("title"),
            description=item.get("description"),
            quantity=item["quantity"],
            unit_price=item["unit_price"],
            total=line_total(item["quantity"], item["unit_price"]),
        )
        for item in items
    ]


async def _load_invoice(db: AsyncSession, invoice_id: int) -> Invoice:
    result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise InvoiceNotFound("Invoice not found")
    return invoice


async def _load_client(db: AsyncSession, client_id: Optional[int]) -> Optional[Client]:
    if client_id is None:
        return None
    result = await db.execute(select(Client).where(Client.id == client_id))
    return result.scalar_one_or_none()


async def _load_items(db: AsyncSession, invoice_id: int) -> List[InvoiceItem]:
    result = await db.execute(
        select(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id).order_by(InvoiceItem.id)
    )
    return list(result.scalars().all())


async def _require_client(db: AsyncSession, client_id: int) -> Client:
    client = await _load_client(db, client_id)
    if client is None:
        raise ClientNotFound("Client not found", details={"client_id": client_id})
    return client


# ---------------------------- Status transitions ---------------------------- #


def apply_status_change(invoice: Invoice, changes: Dict[str, Any], now: datetime) -> bool:
    """Apply status and timestamp fields from `changes` to `invoice`.

    Moving to Paid (or Advance) stamps paid_at (or advance_paid_at) with `now`
    unless the caller supplied that timestamp or the invoice already carried
    the status with a stamp. Supplied timestamps, null included, are written
    last and win. Returns True when anything was applied.
    """
    applied = False
    new_status = changes.get("status")
    if new_status is not None:
        new_status = InvoiceStatus(new_status).value
        previous = invoice.status
        if new_status == InvoiceStatus.PAID.value and "paid_at" not in changes:
            if previous != new_status or invoice.paid_at is None:
                invoice.paid_at = now
        elif new_status == InvoiceStatus.ADVANCE.value and "advance_paid_at" not in changes:
            if previous != new_status or invoice.advance_paid_at is None:
                invoice.advance_paid_at = now
        invoice.status = new_status
        applied = True

    for name in TIMESTAMP_FIELDS:
        if name in changes:
            setattr(invoice, name, _as_utc_naive(changes[name]))
            applied = True
    return applied


# ------------------------------- Operations --------------------------------- #


async def create_invoice_service(db: AsyncSession, payload: Dict[str, Any]) -> InvoiceBundle:
    """Create an invoice and its items in one transaction.

    The date is read once so the number and the stored invoice_date agree.
    """
    client = await _require_client(db, payload["client_id"])
    items = payload.get("items") or []
    today = _today()
    invoice_number = await next_invoice_number(db, today)
    invoice = Invoice(
        invoice_number=invoice_number,
        client_id=client.id,
        project=payload.get("project") or "",
        status=InvoiceStatus(payload.get("status") or InvoiceStatus.UNPAID).value,
        invoice_date=today,
        subtotal=_checked_subtotal(items),
        notes=payload.get("notes") or "",
        created_at=_now(),
    )
    db.add(invoice)
    await db.flush()
    rows = _build_items(invoice.id, items)
    db.add_all(rows)
    await db.commit()
    logger.info("Created invoice %s (id=%s, %d items)", invoice_number, invoice.id, len(rows))
    return InvoiceBundle(invoice=invoice, client=client, items=rows)


async def get_invoice_service(db: AsyncSession, invoice_id: int) -> InvoiceBundle:
    invoice = await _load_invoice(db, invoice_id)
    client = await _load_client(db, invoice.client_id)
    items = await _load_items(db, invoice_id)
    return InvoiceBundle(invoice=invoice, client=client, items=items)


async def list_invoices_service(db: AsyncSession) -> List[InvoiceBundle]:
    """All invoices with their client, newest invoice date first."""
    result = await db.execute(
        select(Invoice, Client)
        .outerjoin(Client, Client.id == Invoice.client_id)
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
    )
    return [InvoiceBundle(invoice=inv, client=cl) for inv, cl in result.all()]


async def patch_invoice_service(
    db: AsyncSession, invoice_id: int, changes: Dict[str, Any]
) -> Invoice:
    """Partial update of status and timestamps."""
    invoice = await _load_invoice(db, invoice_id)
    # A null status on its own is not an update
    effective = {k: v for k, v in changes.items() if not (k == "status" and v is None)}
    if not apply_status_change(invoice, effective, _now()):
        raise ValidationError("No fields to update")
    await db.commit()
    logger.info("Patched invoice %s: %s", invoice_id, sorted(effective))
    return invoice


async def replace_invoice_service(
    db: AsyncSession, invoice_id: int, payload: Dict[str, Any]
) -> InvoiceBundle:
    """Full update: header fields, items and subtotal replaced together."""
    invoice = await _load_invoice(db, invoice_id)
    client_id = payload["client_id"]
    if client_id != invoice.client_id:
        await _require_client(db, client_id)
    items = payload.get("items") or []
    subtotal = _checked_subtotal(items)

    invoice.client_id = client_id
    if payload.get("invoice_number"):
        invoice.invoice_number = payload["invoice_number"]
    if payload.get("invoice_date"):
        invoice.invoice_date = payload["invoice_date"]
    invoice.project = payload.get("project") or ""
    invoice.notes = payload.get("notes") or ""
    invoice.subtotal = subtotal

    changes = {k: payload[k] for k in TIMESTAMP_FIELDS if k in payload}
    changes["status"] = payload.get("status") or InvoiceStatus.UNPAID.value
    apply_status_change(invoice, changes, _now())

    await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
    rows = _build_items(invoice_id, items)
    db.add_all(rows)
    await db.commit()
    logger.info("Replaced invoice %s with %d items", invoice_id, len(rows))
    client = await _load_client(db, invoice.client_id)
    return InvoiceBundle(invoice=invoice, client=client, items=rows)


async def delete_invoice_service(db: AsyncSession, invoice_id: int) -> None:
    invoice = await _load_invoice(db, invoice_id)
    await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
    await db.delete(invoice)
    await db.commit()
    logger.info("Deleted invoice %s", invoice_id)


async def overview_stats_service(db: AsyncSession) -> PortfolioStats:
    result = await db.execute(select(Invoice.status, Invoice.subtotal))
    return portfolio_stats(result.all())


__all__ = [
    "format_invoice_number",
    "next_invoice_number",
    "InvoiceBundle",
    "apply_status_change",
    "create_invoice_service",
    "get_invoice_service",
    "list_invoices_service",
    "patch_invoice_service",
    "replace_invoice_service",
    "delete_invoice_service",
    "overview_stats_service",
]

"""Invoice router: CRUD, status changes, statistics and documents.

Services raise domain exceptions; they are translated to HTTPException with a
``code`` attribute here and rendered by the global handler in main.py.
Metrics emission (create/update/delete/pdf counters) via record_invoice_operation.
"""
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db, get_async_db_dependency
from ..config.logging import bind_context
from ..config.observability import record_invoice_operation
from ..config.settings import get_settings
from ..models.database import Client, Invoice, InvoiceItem, InvoiceStatus
from ..services.company_service import get_company_profile
from ..services.document_service import render_invoice_html
from ..services.invoice_service import (
    create_invoice_service,
    delete_invoice_service,
    get_invoice_service,
    list_invoices_service,
    overview_stats_service,
    patch_invoice_service,
    replace_invoice_service,
)
from ..services.pdf_service import PdfConverter, get_pdf_converter
from ..utils.errors import DomainError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()

TIMESTAMP_KEYS = ("created_at", "paid_at", "advance_paid_at")


def _blank_timestamps_to_none(values: Any) -> Any:
    """Date inputs cleared in the UI arrive as empty strings."""
    if not isinstance(values, dict):
        return values
    for key in TIMESTAMP_KEYS + ("invoice_date",):
        if isinstance(values.get(key), str) and values[key].strip() == "":
            values[key] = None
    return values


# Pydantic schemas


class ItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0, allow_inf_nan=False)


class InvoiceCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_id: int
    project: Optional[str] = ""
    status: InvoiceStatus = InvoiceStatus.UNPAID
    notes: Optional[str] = ""
    items: List[ItemIn] = Field(default_factory=list)


class InvoicePatch(BaseModel):
    """Status / timestamp change. Only fields present in the body are applied."""
    model_config = ConfigDict(extra="ignore")

    status: Optional[InvoiceStatus] = None
    paid_at: Optional[datetime] = None
    advance_paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        return _blank_timestamps_to_none(values)


class InvoiceReplace(BaseModel):
    """Full invoice update; items replace the stored ones wholesale."""
    model_config = ConfigDict(extra="ignore")

    client_id: int
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    project: Optional[str] = ""
    status: Optional[InvoiceStatus] = InvoiceStatus.UNPAID
    notes: Optional[str] = ""
    items: List[ItemIn] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    advance_paid_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        return _blank_timestamps_to_none(values)


# Serializers


def _iso(value: Optional[datetime]) -> Optional[str]:
    # Stored values are naive UTC
    return value.isoformat() + "Z" if value else None


def _invoice_to_dict(invoice: Invoice, client: Optional[Client] = None) -> Dict[str, Any]:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "client_id": invoice.client_id,
        "contact_person": client.contact_person if client else None,
        "project": invoice.project,
        "status": invoice.status,
        "invoice_date": invoice.invoice_date.isoformat() if invoice.invoice_date else None,
        "subtotal": float(invoice.subtotal or 0),
        "total": float(invoice.subtotal or 0),
        "notes": invoice.notes,
        "created_at": _iso(invoice.created_at),
        "paid_at": _iso(invoice.paid_at),
        "advance_paid_at": _iso(invoice.advance_paid_at),
    }


def _item_to_dict(item: InvoiceItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "invoice_id": item.invoice_id,
        "title": item.title,
        "description": item.description,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "total": item.total,
    }


def _bundle_to_dict(bundle) -> Dict[str, Any]:
    data = _invoice_to_dict(bundle.invoice, bundle.client)
    data["items"] = [_item_to_dict(i) for i in bundle.items]
    return data


def _attachment_header(label: str, fallback: str) -> str:
    """Content-Disposition for `<label>.pdf`.

    Headers are latin-1 on the wire, so non-ASCII labels get an ASCII
    `filename` plus an RFC 5987 `filename*` carrying the UTF-8 name.
    """
    name = label.replace('"', "").replace("/", "_").replace("\\", "_").strip() or fallback
    ascii_name = re.sub(r"[^\x20-\x7e]", "_", name)
    header = f'attachment; filename="{ascii_name}.pdf"'
    if ascii_name != name:
        header += f"; filename*=UTF-8''{quote(name + '.pdf')}"
    return header


# Routes


@router.get('')
@router.get('/')
async def list_invoices(db: AsyncSession = Depends(get_async_db_dependency)):
    bundles = await list_invoices_service(db)
    return [_invoice_to_dict(b.invoice, b.client) for b in bundles]


@router.post('', status_code=status.HTTP_201_CREATED)
@router.post('/', status_code=status.HTTP_201_CREATED)
async def create_invoice(payload: InvoiceCreate, db: AsyncSession = Depends(get_async_db_dependency)):
    try:
        bundle = await create_invoice_service(db, payload.model_dump())
    except DomainError as exc:
        raise to_http_exception(exc)
    record_invoice_operation("create")
    return {"invoice_number": bundle.invoice.invoice_number, "invoice_id": bundle.invoice.id}


@router.get('/stats/overview')
async def invoice_stats_overview(db: AsyncSession = Depends(get_async_db_dependency)):
    """Dashboard figures: revenue, outstanding amount and open invoice count."""
    stats = await overview_stats_service(db)
    return stats.as_dict()


@router.get('/{invoice_id}')
async def get_invoice(invoice_id: int, db: AsyncSession = Depends(get_async_db_dependency)):
    try:
        bundle = await get_invoice_service(db, invoice_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _bundle_to_dict(bundle)


@router.patch('/{invoice_id}')
async def patch_invoice(
    invoice_id: int,
    payload: InvoicePatch,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        invoice = await patch_invoice_service(db, invoice_id, payload.model_dump(exclude_unset=True))
    except DomainError as exc:
        raise to_http_exception(exc)
    record_invoice_operation("update")
    return _invoice_to_dict(invoice)


@router.put('/{invoice_id}')
async def replace_invoice(
    invoice_id: int,
    payload: InvoiceReplace,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        bundle = await replace_invoice_service(db, invoice_id, payload.model_dump(exclude_unset=True))
    except DomainError as exc:
        raise to_http_exception(exc)
    record_invoice_operation("update")
    return _bundle_to_dict(bundle)


@router.delete('/{invoice_id}')
async def delete_invoice(invoice_id: int, db: AsyncSession = Depends(get_async_db_dependency)):
    try:
        await delete_invoice_service(db, invoice_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    record_invoice_operation("delete")
    return {"success": True}


@router.get('/{invoice_id}/preview', response_class=HTMLResponse)
async def preview_invoice(invoice_id: int, db: AsyncSession = Depends(get_async_db_dependency)):
    """Printable HTML document for the invoice."""
    try:
        bundle = await get_invoice_service(db, invoice_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    company = await get_company_profile(db)
    html = render_invoice_html(bundle.invoice, bundle.client, company, bundle.items)
    return HTMLResponse(content=html)


@router.get('/{invoice_id}/pdf/{label}')
async def download_invoice_pdf(
    invoice_id: int,
    label: str,
    request: Request,
    converter: PdfConverter = Depends(get_pdf_converter),
):
    """Print the preview page to PDF and return it as an attachment named `<label>.pdf`.

    The session is released before rendering: the browser loads the preview
    through its own request while this one waits.
    """
    try:
        async with get_async_db() as db:
            await get_invoice_service(db, invoice_id)
    except DomainError as exc:
        raise to_http_exception(exc)

    base_url = get_settings().PDF_SOURCE_BASE_URL or str(request.base_url)
    source_url = f"{base_url.rstrip('/')}/api/invoices/{invoice_id}/preview"
    log = bind_context(logger, request_id=getattr(request.state, "request_id", None))
    log.info("Rendering PDF for invoice %s from %s", invoice_id, source_url)
    try:
        pdf_bytes = await converter.render_pdf(source_url)
    except DomainError as exc:
        raise to_http_exception(exc)
    record_invoice_operation("pdf")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": _attachment_header(label, str(invoice_id))},
    )


__all__ = ["router"]

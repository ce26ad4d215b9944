"""HTML invoice document rendering.

`render_invoice_html` is a pure function of its inputs: the same invoice,
client, company profile and items always produce the same markup. The due
total is recomputed from the items rather than read from the stored subtotal.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Optional
from urllib.parse import quote

from jinja2 import Environment, PackageLoader, select_autoescape

from ..config.settings import get_settings
from ..models.database import InvoiceStatus
from ..utils.money_format import format_money
from .totals import deposit_split, invoice_subtotal, line_total

TEMPLATE_NAME = "invoice.html.j2"

WATERMARKS = {
    InvoiceStatus.PAID.value: "PAID",
    InvoiceStatus.UNPAID.value: "UNPAID",
}


def _lines(value: Optional[str]) -> List[str]:
    return (value or "").split("\n")


def _money(value: Any) -> str:
    return format_money(value, get_settings().CURRENCY_SYMBOL)


_env = Environment(
    loader=PackageLoader("invoicedesk", "templates"),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money"] = _money
_env.filters["lines"] = _lines
_env.globals["line_total"] = line_total


def document_total(items: Iterable[Any]) -> float:
    return invoice_subtotal(items)


def watermark_for(status: Optional[str]) -> Optional[str]:
    """Watermark text for a status; Advance invoices carry none."""
    return WATERMARKS.get(status)


def pdf_path(invoice: Any) -> str:
    label = quote(str(invoice.invoice_number or invoice.id), safe="")
    return f"/api/invoices/{invoice.id}/pdf/{label}"


def render_invoice_html(invoice: Any, client: Any, company: Any, items: Iterable[Any]) -> str:
    items = list(items)
    total = document_total(items)
    deposit, balance = deposit_split(total)
    banks = [b for b in (getattr(company, "bank_info_1", None), getattr(company, "bank_info_2", None)) if b]
    template = _env.get_template(TEMPLATE_NAME)
    return template.render(
        invoice=invoice,
        client=client,
        company=company,
        items=items,
        total=total,
        deposit=deposit,
        balance=balance,
        banks=banks,
        watermark=watermark_for(invoice.status),
        pdf_url=pdf_path(invoice),
    )


__all__ = ["render_invoice_html", "document_total", "watermark_for", "pdf_path"]

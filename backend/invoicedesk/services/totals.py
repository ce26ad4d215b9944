"""Invoice arithmetic and portfolio statistics.

Pure functions only; no session access. Amounts are floats multiplied and summed
without rounding. Rounding happens at display time (see utils.money_format).

Portfolio rules:
  - total_revenue      = sum(Paid) + 0.5 * sum(Advance)
  - outstanding_amount = sum(Unpaid) + 0.5 * sum(Advance)
  - unpaid_count       = count(Unpaid or Advance)

An Advance invoice contributes half of its subtotal to each bucket: a 50%
deposit has been received and 50% is still due.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Iterable, Optional, Tuple

from ..models.database import InvoiceStatus

ADVANCE_SHARE = 0.5


def line_total(quantity: Any, unit_price: Any) -> float:
    """Total for one line: quantity * unit_price."""
    return quantity * unit_price


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name)


def invoice_subtotal(items: Iterable[Any]) -> float:
    """Sum of line totals; accepts ORM items, schema objects or plain dicts."""
    return sum(
        (line_total(_field(i, "quantity"), _field(i, "unit_price")) for i in items),
        0.0,
    )


def deposit_split(total: float) -> Tuple[float, float]:
    """(deposit, remaining balance): both exactly half of the total."""
    half = total / 2
    return half, half


@dataclass
class PortfolioStats:
    total_revenue: float = 0.0
    outstanding_amount: float = 0.0
    unpaid_count: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def portfolio_stats(rows: Iterable[Tuple[Optional[str], Optional[float]]]) -> PortfolioStats:
    """Aggregate (status, subtotal) pairs into dashboard statistics."""
    stats = PortfolioStats()
    for status, subtotal in rows:
        amount = float(subtotal or 0)
        if status == InvoiceStatus.PAID.value:
            stats.total_revenue += amount
        elif status == InvoiceStatus.UNPAID.value:
            stats.outstanding_amount += amount
            stats.unpaid_count += 1
        elif status == InvoiceStatus.ADVANCE.value:
            stats.total_revenue += amount * ADVANCE_SHARE
            stats.outstanding_amount += amount * ADVANCE_SHARE
            stats.unpaid_count += 1
    return stats


__all__ = [
    "line_total",
    "invoice_subtotal",
    "deposit_split",
    "PortfolioStats",
    "portfolio_stats",
]

"""Currency display helpers.

Amounts are stored as unrounded floats; rounding to two decimals happens only
here, at presentation time.

Examples:
>>> format_amount(1234.5)
'1234.50'
>>> format_money(0.125)
'$0.13'
>>> format_money(-3)
'-$3.00'
"""
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]

__all__ = ["format_amount", "format_money"]

_CENT = Decimal("0.01")


def format_amount(value: Optional[Number]) -> str:
    """Round half-up to two decimals and return the plain string."""
    if value is None:
        value = 0
    # str() first so 0.125 is treated as written, not as its binary approximation
    dec = value if isinstance(value, Decimal) else Decimal(str(value))
    return format(dec.quantize(_CENT, rounding=ROUND_HALF_UP), "f")


def format_money(value: Optional[Number], symbol: str = "$") -> str:
    amount = format_amount(value)
    if amount.startswith("-"):
        return f"-{symbol}{amount[1:]}"
    return f"{symbol}{amount}"

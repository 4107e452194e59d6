"""
Money arithmetic helpers.

All amounts are Decimal. Rounding is half-up to whole cents.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Any) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

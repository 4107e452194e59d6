"""
Quote Totals Aggregator.

Totals are recomputed from the full line list every time, never patched.
"""

from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from cpq.app.core.config import settings
from cpq.app.core.exceptions import InvalidPriceError, InvalidTaxRateError
from cpq.app.domain.pricing.money import ZERO, round_money, to_decimal
from cpq.app.schemas.quote import QuoteItem, QuoteTotals


def _item_fields(item: Union[QuoteItem, Mapping[str, Any]]):
    if isinstance(item, Mapping):
        return to_decimal(item["unit_price"]), to_decimal(item["quantity"])
    return to_decimal(item.unit_price), to_decimal(item.quantity)


def calculate_quote_totals(
    items: Iterable[Union[QuoteItem, Mapping[str, Any]]],
    tax_rate: Optional[Decimal] = None,
    discount_amount: Decimal = ZERO,
) -> QuoteTotals:
    """
    Sum priced lines into quote-level totals.

    subtotal = round(sum(unit_price * quantity))
    taxable  = subtotal - discount_amount (not clamped at zero)
    tax      = round(taxable * tax_rate)
    total    = round(taxable + tax)

    Args:
        items: Lines with ``unit_price`` and ``quantity``
        tax_rate: Fraction, e.g. 0.05 (defaults to settings.default_tax_rate)
        discount_amount: Whole-quote discount in currency

    Raises:
        InvalidTaxRateError: If tax_rate is negative.
        InvalidPriceError: If a line has a negative unit price.
    """
    rate = settings.default_tax_rate if tax_rate is None else to_decimal(tax_rate)
    if rate < ZERO:
        raise InvalidTaxRateError(rate)
    discount = to_decimal(discount_amount or ZERO)

    raw_subtotal = ZERO
    for item in items:
        unit_price, quantity = _item_fields(item)
        if unit_price < ZERO:
            raise InvalidPriceError(unit_price, field="unit_price")
        raw_subtotal += unit_price * quantity

    subtotal = round_money(raw_subtotal)
    taxable_amount = subtotal - discount
    tax_amount = round_money(taxable_amount * rate)
    total_amount = round_money(taxable_amount + tax_amount)

    return QuoteTotals(
        subtotal=subtotal,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )

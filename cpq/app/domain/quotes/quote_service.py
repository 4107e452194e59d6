"""
Quote Pricing Service (Domain Logic).

Prices every line of a quote against one rule catalog and aggregates the
header totals. Persistence stays with the caller.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from cpq.app.core.exceptions import InvalidPriceError, InvalidQuantityError
from cpq.app.core.config import settings
from cpq.app.domain.pricing.calculator import PricingCalculator, zero_discount_result
from cpq.app.domain.pricing.money import ZERO, to_decimal
from cpq.app.domain.pricing.rule_parser import parse_rules
from cpq.app.domain.quotes.totals import calculate_quote_totals
from cpq.app.models.pricing_enums import CustomerLevel
from cpq.app.schemas.pricing import AppliedRuleInfo, PricingContext, PricingRule
from cpq.app.schemas.quote import PricedQuote, PricedQuoteLine, QuoteLineInput
from cpq.app.services.audit import AuditAction, log_event


class QuoteService:

    @staticmethod
    def price_line(
        org_id: str,
        customer_level: CustomerLevel,
        line: QuoteLineInput,
        rules: Sequence[PricingRule],
        sort_order: int = 0,
        now: Optional[datetime] = None,
    ) -> PricedQuoteLine:
        """Price a single quote line. Custom lines (no product) skip the rules."""
        if line.product_id:
            context = PricingContext(
                product_id=line.product_id,
                category_id=line.category_id,
                quantity=line.quantity,
                customer_level=customer_level,
                base_price=line.base_price,
                org_id=org_id,
            )
            result = PricingCalculator.calculate_price(context, rules, now)
        else:
            if line.quantity <= ZERO:
                raise InvalidQuantityError(line.quantity)
            if line.base_price < ZERO:
                raise InvalidPriceError(line.base_price)
            result = zero_discount_result(line.base_price, line.quantity)

        return PricedQuoteLine(
            product_id=line.product_id,
            category_id=line.category_id,
            product_name=line.product_name,
            product_sku=line.product_sku,
            quantity=line.quantity,
            unit=line.unit,
            original_price=result.original_price,
            unit_price=result.unit_price,
            line_total=result.line_total,
            discount_percentage=result.discount_percentage,
            applied_rules=result.applied_rules,
            sort_order=sort_order,
            notes=line.notes,
        )

    @staticmethod
    def price_quote(
        org_id: str,
        customer_level: CustomerLevel,
        lines: Iterable[QuoteLineInput],
        rules: Iterable[Union[PricingRule, Mapping[str, Any]]],
        tax_rate: Optional[Decimal] = None,
        discount_amount: Decimal = ZERO,
        now: Optional[datetime] = None,
    ) -> PricedQuote:
        """
        Price every line, then recompute the header totals.

        Flow:
        1. Validate the rule rows once for the whole quote
        2. Price each line (sort_order follows input position)
        3. Aggregate subtotal, tax and total

        Args:
            org_id: Tenant the quote belongs to
            customer_level: The quote customer's tier
            lines: Lines in display order
            rules: Rule catalog for the org, typed or raw rows
            tax_rate: Defaults to settings.default_tax_rate
            discount_amount: Whole-quote discount

        Returns:
            PricedQuote
        """
        rule_catalog = parse_rules(rules)
        rate = settings.default_tax_rate if tax_rate is None else to_decimal(tax_rate)
        discount = to_decimal(discount_amount or ZERO)

        priced_lines = [
            QuoteService.price_line(org_id, customer_level, line, rule_catalog, index, now)
            for index, line in enumerate(lines)
        ]
        totals = calculate_quote_totals(priced_lines, rate, discount)

        log_event(
            AuditAction.QUOTE_PRICED,
            org_id=org_id,
            metadata={
                "lines": len(priced_lines),
                "rules_considered": len(rule_catalog),
                "subtotal": str(totals.subtotal),
                "total_amount": str(totals.total_amount),
            },
        )

        return PricedQuote(
            lines=priced_lines,
            totals=totals,
            tax_rate=rate,
            discount_amount=discount,
        )


def serialize_applied_rules(applied_rules: List[AppliedRuleInfo]) -> str:
    """JSON text for the ``applied_rules`` column of a quote line, order kept."""
    return json.dumps([rule.model_dump(mode="json") for rule in applied_rules], ensure_ascii=False)

"""
Pricing Calculator.

Prices one quote line:
1. Validate the context (caller contract)
2. Validate the rule rows
3. Select applicable rules, grouped by type
4. Cascade discounts in type order
5. Round unit price and line total to cents
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from cpq.app.core.exceptions import InvalidPriceError, InvalidQuantityError
from cpq.app.domain.pricing.discounts import apply_discounts
from cpq.app.domain.pricing.money import HUNDRED, ZERO, round_money
from cpq.app.domain.pricing.rule_parser import parse_rules
from cpq.app.domain.pricing.rule_selector import group_applicable_rules
from cpq.app.schemas.pricing import PricingContext, PricingResult, PricingRule

logger = logging.getLogger("cpq.pricing")


class PricingCalculator:

    @staticmethod
    def validate_context(context: PricingContext) -> None:
        """
        Reject contexts that would produce nonsense prices.

        Raises:
            InvalidQuantityError: If quantity is not positive.
            InvalidPriceError: If base price is negative.
        """
        if context.quantity <= ZERO:
            raise InvalidQuantityError(context.quantity)
        if context.base_price < ZERO:
            raise InvalidPriceError(context.base_price)

    @staticmethod
    def calculate_price(
        context: PricingContext,
        rules: Iterable[Union[PricingRule, Mapping[str, Any]]],
        now: Optional[datetime] = None,
    ) -> PricingResult:
        """
        Calculate the discounted price of one line.

        Args:
            context: Product, quantity, customer tier, base price and org
            rules: Candidate rules, typed or as raw repository rows
            now: Evaluation time for promotion windows (defaults to UTC now)

        Returns:
            PricingResult with rounded unit price and line total and the
            ordered audit trail of applied rules.

        Raises:
            DomainError: If the context breaks the caller contract.
        """
        PricingCalculator.validate_context(context)

        grouped = group_applicable_rules(context, parse_rules(rules), now)
        composition = apply_discounts(context.base_price, grouped)

        base_price = context.base_price
        unit_price = round_money(composition.final_price)
        line_total = round_money(unit_price * context.quantity)

        if base_price > ZERO:
            discount_percentage = round_money((base_price - unit_price) / base_price * HUNDRED)
        else:
            discount_percentage = round_money(ZERO)

        logger.debug(
            "Priced product %s x%s for %s: %s -> %s (%d rule(s))",
            context.product_id, context.quantity, context.customer_level.value,
            base_price, unit_price, len(composition.applied_rules)
        )

        return PricingResult(
            original_price=base_price,
            final_price=unit_price,
            unit_price=unit_price,
            line_total=line_total,
            discount_percentage=discount_percentage,
            discount_amount=composition.total_discount,
            applied_rules=composition.applied_rules,
        )


def calculate_price(
    context: PricingContext,
    rules: Iterable[Union[PricingRule, Mapping[str, Any]]],
    now: Optional[datetime] = None,
) -> PricingResult:
    return PricingCalculator.calculate_price(context, rules, now)


def zero_discount_result(base_price: Decimal, quantity: Decimal) -> PricingResult:
    """Result for a line priced without consulting any rule."""
    unit_price = round_money(base_price)
    return PricingResult(
        original_price=base_price,
        final_price=unit_price,
        unit_price=unit_price,
        line_total=round_money(unit_price * quantity),
        discount_percentage=round_money(ZERO),
        discount_amount=ZERO,
        applied_rules=[],
    )

"""
Discount Compositor.

Applies the selected rules to a running price in a fixed type order:
promotion -> bundle -> tier -> customer_level. One rule per type at most;
discounts compound across types, never within one.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Sequence

from cpq.app.domain.pricing.money import HUNDRED, ZERO, to_decimal
from cpq.app.models.pricing_enums import RULE_TYPE_ORDER, DiscountType
from cpq.app.schemas.pricing import AppliedRuleInfo, PricingRule

logger = logging.getLogger("cpq.pricing")


@dataclass(frozen=True)
class DiscountOutcome:
    discounted_price: Decimal
    discount_amount: Decimal


@dataclass
class DiscountComposition:
    final_price: Decimal
    total_discount: Decimal
    applied_rules: List[AppliedRuleInfo] = field(default_factory=list)


def calculate_discount(price: Decimal, discount_type: str, discount_value: Decimal) -> DiscountOutcome:
    """
    Discount one price by one rule.

    percentage: ``discount_value`` percent off.
    fixed: ``discount_value`` off, never below zero.
    price_override: price replaced by ``discount_value``; the amount is
        negative when the override is higher than the current price.
    Anything else leaves the price alone.
    """
    price = to_decimal(price)
    value = to_decimal(discount_value)

    if discount_type == DiscountType.PERCENTAGE:
        amount = price * (value / HUNDRED)
        return DiscountOutcome(discounted_price=price - amount, discount_amount=amount)

    if discount_type == DiscountType.FIXED:
        return DiscountOutcome(
            discounted_price=max(ZERO, price - value),
            discount_amount=min(price, value),
        )

    if discount_type == DiscountType.PRICE_OVERRIDE:
        return DiscountOutcome(discounted_price=value, discount_amount=price - value)

    return DiscountOutcome(discounted_price=price, discount_amount=ZERO)


def apply_discounts(
    base_price: Decimal,
    grouped_rules: Mapping[str, Sequence[PricingRule]],
) -> DiscountComposition:
    """
    Cascade the head rule of each type group over the base price.

    Args:
        base_price: Catalog price before any rule
        grouped_rules: Rules by type, best first (see ``group_applicable_rules``)

    Returns:
        DiscountComposition. Only rules whose computed discount is positive
        change the price and enter ``applied_rules``; an override that would
        raise the price is therefore skipped.
    """
    current_price = to_decimal(base_price)
    total_discount = ZERO
    applied: List[AppliedRuleInfo] = []

    for rule_type in RULE_TYPE_ORDER:
        candidates = grouped_rules.get(rule_type)
        if not candidates:
            continue

        best_rule = candidates[0]
        outcome = calculate_discount(current_price, best_rule.discount_type, best_rule.discount_value)

        if outcome.discount_amount <= ZERO:
            logger.debug(
                "Rule %s (%s) skipped: discount %s on price %s",
                best_rule.id, rule_type.value, outcome.discount_amount, current_price
            )
            continue

        applied.append(AppliedRuleInfo(
            rule_id=best_rule.id,
            rule_name=best_rule.name,
            rule_type=best_rule.rule_type,
            discount_type=best_rule.discount_type,
            discount_value=best_rule.discount_value,
            discount_amount=outcome.discount_amount,
            priority=best_rule.priority,
        ))
        current_price = outcome.discounted_price
        total_discount += outcome.discount_amount

    return DiscountComposition(
        final_price=current_price,
        total_discount=total_discount,
        applied_rules=applied,
    )

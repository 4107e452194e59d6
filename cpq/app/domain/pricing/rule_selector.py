"""
Pricing Rule Selector.

Determines which pricing rules apply to a pricing context.
For each candidate rule, in order:
1. Active and same org (tenant scope is explicit, never ambient)
2. Scope match on product OR category
3. Type-specific condition match

Matching rules are grouped by rule type. Within a group rules are ordered by
descending priority; equal priorities keep their input order.
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from cpq.app.core.timeutils import as_utc, utc_now
from cpq.app.models.pricing_enums import RULE_TYPE_ORDER
from cpq.app.schemas.pricing import (
    BundleConditions,
    CustomerLevelConditions,
    MalformedConditions,
    PricingContext,
    PricingRule,
    PromotionConditions,
    TierConditions,
)

logger = logging.getLogger("cpq.pricing")


def matches_scope(rule: PricingRule, context: PricingContext) -> bool:
    """
    Product OR category scope check.

    A rule scoped to another product still matches when its category scope
    is unset or equal to the context's category, and vice versa.
    """
    product_match = not rule.product_id or rule.product_id == context.product_id
    category_match = not rule.category_id or rule.category_id == context.category_id
    return product_match or category_match


def matches_tier(conditions: TierConditions, context: PricingContext) -> bool:
    if context.quantity < conditions.min_qty:
        return False
    if conditions.max_qty is not None and context.quantity > conditions.max_qty:
        return False
    return True


def matches_customer_level(conditions: CustomerLevelConditions, context: PricingContext) -> bool:
    if conditions.level is None:
        return True
    return conditions.level == context.customer_level.value


def matches_bundle(conditions: BundleConditions, context: PricingContext) -> bool:
    if not conditions.product_ids:
        return False
    return context.product_id in conditions.product_ids


def is_promotion_active(
    conditions: PromotionConditions,
    rule: PricingRule,
    now: datetime,
) -> bool:
    """Inclusive window check. Condition bounds win over the rule's own dates."""
    start = conditions.start_date or rule.start_date
    end = conditions.end_date or rule.end_date

    if start is not None and start > now:
        return False
    if end is not None and end < now:
        return False
    return True


def matches_conditions(rule: PricingRule, context: PricingContext, now: datetime) -> bool:
    conditions = rule.conditions

    if isinstance(conditions, TierConditions):
        return matches_tier(conditions, context)
    if isinstance(conditions, CustomerLevelConditions):
        return matches_customer_level(conditions, context)
    if isinstance(conditions, BundleConditions):
        return matches_bundle(conditions, context)
    if isinstance(conditions, PromotionConditions):
        return is_promotion_active(conditions, rule, now)
    if isinstance(conditions, MalformedConditions):
        return False
    # OpenConditions: unknown rule types match unconditionally
    return True


def is_applicable(rule: PricingRule, context: PricingContext, now: datetime) -> bool:
    if not rule.is_active:
        return False
    if rule.org_id != context.org_id:
        return False
    if not matches_scope(rule, context):
        return False
    return matches_conditions(rule, context, now)


def filter_applicable_rules(
    context: PricingContext,
    rules: Iterable[PricingRule],
    now: Optional[datetime] = None,
) -> List[PricingRule]:
    """Keep the rules that apply to the context, preserving input order."""
    now = as_utc(now) or utc_now()
    applicable = [rule for rule in rules if is_applicable(rule, context, now)]
    logger.debug(
        "Product %s: %d applicable rule(s) %s",
        context.product_id, len(applicable), [rule.id for rule in applicable]
    )
    return applicable


def group_applicable_rules(
    context: PricingContext,
    rules: Iterable[PricingRule],
    now: Optional[datetime] = None,
) -> Dict[str, List[PricingRule]]:
    """
    Group applicable rules by rule type.

    Returns:
        Mapping of rule type to its rules, highest priority first. The head
        of each list is the only rule of that type that will ever apply.
    """
    # sorted() is stable, so ties keep input order
    applicable = sorted(
        filter_applicable_rules(context, rules, now),
        key=lambda rule: rule.priority,
        reverse=True,
    )

    grouped: Dict[str, List[PricingRule]] = OrderedDict()
    for rule in applicable:
        grouped.setdefault(rule.rule_type, []).append(rule)
    return grouped


def select_applicable_rules(
    context: PricingContext,
    rules: Iterable[PricingRule],
    now: Optional[datetime] = None,
) -> List[PricingRule]:
    """
    Pick the single best rule of each known type.

    Returns:
        At most one rule per type, in application order
        (promotion, bundle, tier, customer_level).
    """
    grouped = group_applicable_rules(context, rules, now)
    return [grouped[rule_type][0] for rule_type in RULE_TYPE_ORDER if grouped.get(rule_type)]

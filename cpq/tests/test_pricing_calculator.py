"""
End-to-end line pricing tests.
"""

from decimal import Decimal

import pytest

from cpq.app.core.exceptions import DomainError, InvalidPriceError, InvalidQuantityError
from cpq.app.domain.pricing.calculator import PricingCalculator, calculate_price
from cpq.app.models.pricing_enums import CustomerLevel, RuleType
from cpq.tests.factories import make_context, rule_row


def test_tier_discount_scenario(now):
    context = make_context(base_price=Decimal("100"), quantity=Decimal("20"))
    rules = [rule_row(
        rule_type="tier",
        conditions={"min_qty": 10},
        discount_type="percentage",
        discount_value=10,
        priority=5,
    )]

    result = calculate_price(context, rules, now)

    assert result.unit_price == Decimal("90.00")
    assert result.final_price == Decimal("90.00")
    assert result.discount_amount == Decimal("10")
    assert result.line_total == Decimal("1800.00")
    assert result.discount_percentage == Decimal("10.00")
    assert len(result.applied_rules) == 1
    assert result.applied_rules[0].rule_type == RuleType.TIER
    assert result.applied_rules[0].discount_amount == Decimal("10")


def test_promotion_then_customer_level_scenario(now):
    context = make_context(base_price=Decimal("200"), customer_level=CustomerLevel.VIP)
    rules = [
        rule_row(
            rule_type="customer_level",
            conditions={"level": "vip"},
            discount_type="percentage",
            discount_value=10,
            priority=50,
        ),
        rule_row(
            rule_type="promotion",
            conditions={"start_date": "2026-06-01", "end_date": "2026-06-30"},
            discount_type="fixed",
            discount_value=20,
            priority=1,
        ),
    ]

    result = calculate_price(context, rules, now)

    assert result.unit_price == Decimal("162.00")
    assert result.discount_amount == Decimal("38")
    assert [applied.rule_type for applied in result.applied_rules] == [
        RuleType.PROMOTION, RuleType.CUSTOMER_LEVEL,
    ]
    assert [applied.discount_amount for applied in result.applied_rules] == [
        Decimal("20"), Decimal("18"),
    ]


def test_no_matching_rules_scenario(now):
    result = calculate_price(make_context(base_price=Decimal("49.99")), [], now)

    assert result.final_price == Decimal("49.99")
    assert result.original_price == Decimal("49.99")
    assert result.discount_amount == Decimal("0")
    assert result.discount_percentage == Decimal("0")
    assert result.applied_rules == []


def test_lower_priority_rule_of_same_type_never_contributes(now):
    rules = [
        rule_row(id="small", rule_type="tier", conditions={"min_qty": 1}, discount_value=5, priority=10),
        rule_row(id="large", rule_type="tier", conditions={"min_qty": 1}, discount_value=30, priority=1),
    ]

    result = calculate_price(make_context(quantity=Decimal("5")), rules, now)

    assert [applied.rule_id for applied in result.applied_rules] == ["small"]
    assert result.unit_price == Decimal("95.00")


def test_unit_price_and_line_total_round_half_up(now):
    # 10.005 -> 10.01, then 10.01 * 3 = 30.03
    rules = [rule_row(rule_type="tier", discount_type="fixed", discount_value="0.995")]
    result = calculate_price(
        make_context(base_price=Decimal("11"), quantity=Decimal("3")), rules, now
    )

    assert result.unit_price == Decimal("10.01")
    assert result.line_total == Decimal("30.03")


def test_line_total_uses_rounded_unit_price(now):
    rules = [rule_row(rule_type="tier", discount_type="percentage", discount_value="33.333")]
    result = calculate_price(
        make_context(base_price=Decimal("10"), quantity=Decimal("3")), rules, now
    )

    assert result.unit_price == Decimal("6.67")
    assert result.line_total == Decimal("20.01")
    assert result.discount_percentage == Decimal("33.30")


def test_zero_base_price_has_zero_discount_percentage(now):
    rules = [rule_row(rule_type="tier", discount_type="fixed", discount_value=5)]
    result = calculate_price(make_context(base_price=Decimal("0")), rules, now)

    assert result.unit_price == Decimal("0.00")
    assert result.discount_percentage == Decimal("0")
    assert result.applied_rules == []


def test_malformed_rules_do_not_block_pricing(now):
    rules = [
        rule_row(rule_type="tier", conditions="{not json"),
        rule_row(rule_type="bundle", conditions=["prod-1"]),
        rule_row(id=None, rule_type="tier"),
        rule_row(rule_type="tier", discount_value="ten percent"),
        rule_row(id="good", rule_type="customer_level", conditions={}, discount_value=10),
    ]

    result = calculate_price(make_context(), rules, now)

    assert [applied.rule_id for applied in result.applied_rules] == ["good"]
    assert result.unit_price == Decimal("90.00")


@pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
def test_non_positive_quantity_is_rejected(now, quantity):
    with pytest.raises(InvalidQuantityError) as exc_info:
        calculate_price(make_context(quantity=quantity), [], now)
    assert exc_info.value.error_code == "ERR_DOMAIN_001"


def test_negative_base_price_is_rejected(now):
    with pytest.raises(InvalidPriceError):
        calculate_price(make_context(base_price=Decimal("-0.01")), [], now)


def test_domain_errors_share_a_base_class(now):
    with pytest.raises(DomainError):
        PricingCalculator.calculate_price(make_context(quantity=Decimal("0")), [], now)


def test_pricing_is_idempotent(now):
    rules = [
        rule_row(rule_type="tier", conditions={"min_qty": 2}, discount_value=7),
        rule_row(rule_type="customer_level", conditions={"level": "normal"}, discount_type="fixed", discount_value=3),
    ]
    context = make_context(quantity=Decimal("4"))

    assert calculate_price(context, rules, now) == calculate_price(context, rules, now)


@pytest.mark.parametrize("discount_type, discount_value", [
    ("percentage", 150),
    ("percentage", -5),
    ("price_override", -10),
    ("fixed", -20),
])
def test_out_of_range_discounts_are_ignored(now, discount_type, discount_value):
    rules = [
        rule_row(id="bad", rule_type="tier", discount_type=discount_type, discount_value=discount_value, priority=9),
        rule_row(id="good", rule_type="customer_level", conditions={}, discount_value=10),
    ]

    result = calculate_price(make_context(), rules, now)

    assert [applied.rule_id for applied in result.applied_rules] == ["good"]
    assert result.unit_price == Decimal("90.00")


def test_full_percentage_discount_prices_at_zero(now):
    rules = [rule_row(rule_type="promotion", discount_type="percentage", discount_value=100)]

    result = calculate_price(make_context(), rules, now)

    assert result.unit_price == Decimal("0.00")
    assert result.discount_percentage == Decimal("100.00")


def test_rule_without_name_still_prices(now):
    rules = [rule_row(id="nameless", name=None, rule_type="tier", discount_value=10)]

    result = calculate_price(make_context(), rules, now)

    assert result.unit_price == Decimal("90.00")
    assert result.applied_rules[0].rule_name == ""

"""
Rule boundary parsing tests.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from cpq.app.domain.pricing.rule_parser import parse_conditions, parse_rule, parse_rules
from cpq.app.models.pricing_enums import DiscountType, RuleType
from cpq.app.schemas.pricing import (
    BundleConditions,
    CustomerLevelConditions,
    MalformedConditions,
    OpenConditions,
    PromotionConditions,
    TierConditions,
)
from cpq.tests.factories import rule_row


def test_tier_conditions_are_typed():
    conditions = parse_conditions("tier", {"min_qty": 10, "max_qty": "50"})
    assert isinstance(conditions, TierConditions)
    assert conditions.min_qty == Decimal("10")
    assert conditions.max_qty == Decimal("50")


@pytest.mark.parametrize("raw", [None, {}, {"min_qty": None}, {"min_qty": 0}])
def test_tier_min_qty_defaults_to_zero(raw):
    conditions = parse_conditions("tier", raw)
    assert isinstance(conditions, TierConditions)
    assert conditions.min_qty == Decimal("0")


def test_customer_level_blank_level_is_wildcard():
    conditions = parse_conditions("customer_level", {"level": ""})
    assert isinstance(conditions, CustomerLevelConditions)
    assert conditions.level is None


def test_bundle_product_ids_are_strings():
    conditions = parse_conditions("bundle", {"product_ids": [1, "2"]})
    assert isinstance(conditions, BundleConditions)
    assert conditions.product_ids == ["1", "2"]


def test_promotion_dates_are_utc():
    conditions = parse_conditions("promotion", {
        "start_date": "2026-06-01",
        "end_date": "2026-06-30T18:00:00+08:00",
    })
    assert isinstance(conditions, PromotionConditions)
    assert conditions.start_date == datetime(2026, 6, 1, tzinfo=timezone.utc)
    assert conditions.end_date == datetime(2026, 6, 30, 10, 0, tzinfo=timezone.utc)


def test_conditions_stored_as_json_text_are_accepted():
    conditions = parse_conditions("tier", '{"min_qty": 5}')
    assert isinstance(conditions, TierConditions)
    assert conditions.min_qty == Decimal("5")


@pytest.mark.parametrize("rule_type, raw", [
    ("tier", {"min_qty": "many"}),
    ("tier", "{broken"),
    ("bundle", {"product_ids": "prod-1"}),
    ("bundle", ["prod-1"]),
    ("promotion", {"end_date": "soon"}),
    ("customer_level", {"level": ["vip"]}),
])
def test_bad_payloads_become_malformed(rule_type, raw):
    conditions = parse_conditions(rule_type, raw)
    assert isinstance(conditions, MalformedConditions)
    assert conditions.reason


def test_unknown_rule_type_gets_open_conditions():
    conditions = parse_conditions("seasonal", {"season": "winter"})
    assert isinstance(conditions, OpenConditions)
    assert conditions.payload == {"season": "winter"}


def test_parse_rule_keeps_known_enums_and_unknown_strings():
    known = parse_rule(rule_row(rule_type="bundle", discount_type="fixed"))
    assert known.rule_type is RuleType.BUNDLE
    assert known.discount_type is DiscountType.FIXED

    unknown = parse_rule(rule_row(rule_type="seasonal", discount_type="bogo"))
    assert unknown.rule_type == "seasonal"
    assert unknown.discount_type == "bogo"


def test_parse_rule_normalizes_ids_and_priority():
    rule = parse_rule(rule_row(id=42, product_id="", category_id=7, priority=None))
    assert rule.id == "42"
    assert rule.product_id is None
    assert rule.category_id == "7"
    assert rule.priority == 0


def test_parse_rule_rejects_rows_without_discount_value():
    row = rule_row()
    del row["discount_value"]
    with pytest.raises(ValidationError):
        parse_rule(row)


def test_parse_rules_drops_unusable_rows(caplog):
    rows = [rule_row(id="ok"), rule_row(id="bad", discount_value="n/a")]

    with caplog.at_level("WARNING", logger="cpq.pricing"):
        rules = parse_rules(rows)

    assert [rule.id for rule in rules] == ["ok"]
    assert "id=bad" in caplog.text


def test_parse_rules_passes_typed_rules_through():
    rule = parse_rule(rule_row())
    assert parse_rules([rule]) == [rule]


@pytest.mark.parametrize("discount_type, discount_value", [
    ("percentage", "100.01"),
    ("percentage", -1),
    ("fixed", -1),
    ("price_override", "-0.01"),
])
def test_parse_rule_rejects_discounts_that_could_go_negative(discount_type, discount_value):
    with pytest.raises(ValidationError):
        parse_rule(rule_row(discount_type=discount_type, discount_value=discount_value))


def test_parse_rule_allows_override_above_price_and_zero_values():
    assert parse_rule(rule_row(discount_type="price_override", discount_value=500)).discount_value == Decimal("500")
    assert parse_rule(rule_row(discount_type="fixed", discount_value=0)).discount_value == Decimal("0")


def test_parse_rule_accepts_missing_name():
    row = rule_row(name=None)
    assert parse_rule(row).name == ""
    del row["name"]
    assert parse_rule(row).name == ""

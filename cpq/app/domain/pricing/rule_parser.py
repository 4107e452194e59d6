"""
Pricing Rule Parser.

Validates rule rows at the repository boundary. The rule repository stores
``conditions`` as a free-form object keyed by rule type; this module turns
it into one of the typed condition variants so the selector can dispatch on
the variant instead of probing optional fields.

Bad condition payloads never raise: they become ``MalformedConditions`` and
the rule simply never matches. Rows that cannot form a rule at all (no id,
non-numeric discount value, ...) are dropped by ``parse_rules`` with a
warning so one bad row cannot block a quote.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Union

from pydantic import ValidationError

from cpq.app.models.pricing_enums import RuleType
from cpq.app.schemas.pricing import (
    BundleConditions,
    CustomerLevelConditions,
    MalformedConditions,
    OpenConditions,
    PricingRule,
    PromotionConditions,
    RuleConditions,
    TierConditions,
)

logger = logging.getLogger("cpq.pricing")

CONDITION_MODELS = {
    RuleType.TIER: TierConditions,
    RuleType.CUSTOMER_LEVEL: CustomerLevelConditions,
    RuleType.BUNDLE: BundleConditions,
    RuleType.PROMOTION: PromotionConditions,
}


def _error_summary(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts)


def parse_conditions(rule_type: Any, raw: Any) -> RuleConditions:
    """
    Build the typed conditions for a rule.

    Args:
        rule_type: The rule's type, known or not
        raw: The stored conditions (mapping, JSON text or None)

    Returns:
        A condition variant. Unknown rule types get ``OpenConditions``;
        anything that fails validation gets ``MalformedConditions``.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except ValueError:
            return MalformedConditions(payload=raw, reason="conditions are not valid JSON")

    if raw is None:
        raw = {}

    try:
        known_type = RuleType(rule_type)
    except ValueError:
        return OpenConditions(payload=dict(raw) if isinstance(raw, Mapping) else {})

    if not isinstance(raw, Mapping):
        return MalformedConditions(payload=raw, reason="conditions must be an object")

    payload = {key: value for key, value in raw.items() if key != "kind"}
    model = CONDITION_MODELS[known_type]
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        reason = _error_summary(exc)
        logger.debug("Malformed %s conditions %r: %s", known_type.value, raw, reason)
        return MalformedConditions(payload=dict(raw), reason=reason)


def parse_rule(row: Union[PricingRule, Mapping[str, Any]]) -> PricingRule:
    """
    Validate one rule row.

    Raises:
        pydantic.ValidationError: If the row lacks the fields a rule needs.
    """
    if isinstance(row, PricingRule):
        return row
    data: Dict[str, Any] = dict(row)
    data["conditions"] = parse_conditions(data.get("rule_type"), data.get("conditions"))
    return PricingRule.model_validate(data)


def parse_rules(rows: Iterable[Union[PricingRule, Mapping[str, Any]]]) -> List[PricingRule]:
    """Validate many rule rows, dropping (and logging) the ones that are unusable."""
    rules = []
    for index, row in enumerate(rows):
        try:
            rules.append(parse_rule(row))
        except ValidationError as exc:
            rule_id = row.get("id") if isinstance(row, Mapping) else None
            logger.warning(
                "Skipping unusable pricing rule row %s (id=%s): %s",
                index, rule_id, _error_summary(exc)
            )
    return rules

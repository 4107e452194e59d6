"""
Pricing API Endpoints.

Stateless: callers send the rule rows they loaded for the org.
"""

from fastapi import APIRouter

from cpq.app.domain.pricing.calculator import PricingCalculator
from cpq.app.domain.pricing.rule_parser import parse_rules
from cpq.app.domain.pricing.rule_selector import select_applicable_rules
from cpq.app.schemas.pricing import ApplicableRulesResponse, PricingCalculateRequest, PricingResult
from cpq.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.post("/calculate", response_model=PricingResult)
async def calculate_price(payload: PricingCalculateRequest):
    """
    Price one line against the supplied rules.
    """
    result = PricingCalculator.calculate_price(payload.context, payload.rules, payload.now)

    log_event(
        AuditAction.PRICE_CALCULATED,
        org_id=payload.context.org_id,
        metadata={
            "product_id": payload.context.product_id,
            "unit_price": str(result.unit_price),
            "applied_rules": [rule.rule_id for rule in result.applied_rules],
        },
    )
    return result


@router.post("/applicable-rules", response_model=ApplicableRulesResponse)
async def applicable_rules(payload: PricingCalculateRequest):
    """
    Best rule per type for the context, in application order.
    """
    rules = parse_rules(payload.rules)
    selected = select_applicable_rules(payload.context, rules, payload.now)
    return ApplicableRulesResponse(
        rules=selected,
        skipped_rows=len(payload.rules) - len(rules),
    )

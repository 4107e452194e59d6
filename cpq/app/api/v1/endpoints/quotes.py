"""
Quote API Endpoints.

Totals, whole-quote pricing, approval checks, header defaults and analytics.
"""

from fastapi import APIRouter

from cpq.app.domain.quotes.analytics import build_quote_analytics
from cpq.app.domain.quotes.lifecycle import build_quote_defaults, submit_for_approval
from cpq.app.domain.quotes.quote_service import QuoteService
from cpq.app.domain.quotes.totals import calculate_quote_totals
from cpq.app.schemas.analytics import QuoteAnalytics, QuoteAnalyticsRequest
from cpq.app.schemas.quote import (
    ApprovalCheckRequest,
    ApprovalDecision,
    PricedQuote,
    QuoteDefaultsRequest,
    QuoteHeaderDefaults,
    QuotePriceRequest,
    QuoteTotals,
    QuoteTotalsRequest,
)
from cpq.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/quotes", tags=["Quotes"])


@router.post("/totals", response_model=QuoteTotals)
async def quote_totals(payload: QuoteTotalsRequest):
    """
    Recompute subtotal, tax and total from the full line list.
    """
    totals = calculate_quote_totals(payload.items, payload.tax_rate, payload.discount_amount)
    log_event(AuditAction.QUOTE_TOTALS_CALCULATED, metadata={
        "items": len(payload.items),
        "total_amount": str(totals.total_amount),
    })
    return totals


@router.post("/price", response_model=PricedQuote)
async def price_quote(payload: QuotePriceRequest):
    """
    Price every line of a quote and aggregate its totals.
    """
    return QuoteService.price_quote(
        org_id=payload.org_id,
        customer_level=payload.customer_level,
        lines=payload.lines,
        rules=payload.rules,
        tax_rate=payload.tax_rate,
        discount_amount=payload.discount_amount,
        now=payload.now,
    )


@router.post("/approval-check", response_model=ApprovalDecision)
async def approval_check(payload: ApprovalCheckRequest):
    """
    Decide where a submitted draft goes: pending approval or approved.
    """
    return submit_for_approval(payload.status, payload.total_amount, payload.settings)


@router.post("/defaults", response_model=QuoteHeaderDefaults)
async def quote_defaults(payload: QuoteDefaultsRequest):
    """
    Generate quote number, share token and default dates for a new quote.
    """
    return build_quote_defaults(
        issue_date=payload.issue_date,
        valid_until=payload.valid_until,
        tax_rate=payload.tax_rate,
        currency=payload.currency,
    )


@router.post("/analytics", response_model=QuoteAnalytics)
async def quote_analytics(payload: QuoteAnalyticsRequest):
    """
    Dashboard aggregations over the supplied quote and line rows.
    """
    return build_quote_analytics(
        quotes=payload.quotes,
        lines=payload.lines,
        months=payload.months,
        limit=payload.limit,
        now=payload.now,
    )

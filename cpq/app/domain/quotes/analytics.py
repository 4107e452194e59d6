"""
Quote Analytics.

Dashboard aggregations over an org's quote rows:
1. Overview (counts, amounts, conversion rate, average deal size)
2. Monthly trend, zero-filled, ending with the current month
3. Top products by line total
4. Top customers by quoted amount
5. Status distribution
6. Approval queue counts for today

Each function is a pure reduction over the rows handed in. Filtering by org
and dropping deleted rows is the caller's business.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from cpq.app.core.timeutils import as_utc, utc_now
from cpq.app.domain.pricing.money import HUNDRED, ZERO, round_money
from cpq.app.domain.quotes.lifecycle import is_expired
from cpq.app.models.quote_enums import QuoteStatus
from cpq.app.schemas.analytics import (
    AnalyticsOverview,
    ApprovalStats,
    MonthlyTrendPoint,
    QuoteAnalytics,
    QuoteLineRecord,
    QuoteRecord,
    StatusBreakdown,
    TopCustomer,
    TopProduct,
)

logger = logging.getLogger("cpq.analytics")

UNKNOWN_CUSTOMER = "Unknown customer"

OPEN_STATUSES = (
    QuoteStatus.DRAFT,
    QuoteStatus.PENDING_APPROVAL,
    QuoteStatus.APPROVED,
    QuoteStatus.SENT,
)
RESPONDED_STATUSES = (QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED)


def analytics_overview(quotes: Iterable[QuoteRecord], today: Optional[date] = None) -> AnalyticsOverview:
    """
    Headline numbers.

    conversion_rate = accepted / (sent + accepted + rejected) * 100
    expired_quotes counts sent quotes past their validity date; quotes
    already marked ``expired`` are not counted again.
    """
    quotes = list(quotes)
    today = today or utc_now().date()

    accepted = [quote for quote in quotes if quote.status == QuoteStatus.ACCEPTED]
    accepted_amount = sum((quote.total_amount for quote in accepted), ZERO)
    responded = sum(1 for quote in quotes if quote.status in RESPONDED_STATUSES)

    return AnalyticsOverview(
        total_quotes=len(quotes),
        total_amount=sum((quote.total_amount for quote in quotes), ZERO),
        accepted_quotes=len(accepted),
        accepted_amount=accepted_amount,
        conversion_rate=round_money(Decimal(len(accepted)) / responded * HUNDRED) if responded else round_money(ZERO),
        average_deal_size=round_money(accepted_amount / len(accepted)) if accepted else round_money(ZERO),
        pending_quotes=sum(1 for quote in quotes if quote.status in OPEN_STATUSES),
        expired_quotes=sum(
            1 for quote in quotes
            if quote.status == QuoteStatus.SENT and is_expired(quote.valid_until, today)
        ),
    )


def _month_keys(months: int, now: datetime) -> List[str]:
    """``months`` consecutive YYYY-MM keys ending with the month of ``now``."""
    current = now.year * 12 + now.month - 1
    return [
        f"{index // 12:04d}-{index % 12 + 1:02d}"
        for index in range(current - months + 1, current + 1)
    ]


def monthly_trend(
    quotes: Iterable[QuoteRecord],
    months: int = 6,
    now: Optional[datetime] = None,
) -> List[MonthlyTrendPoint]:
    """
    Quotes created per month, oldest month first.

    Months without quotes are present with zeros. Quotes created outside the
    window, or without a creation time, are ignored.
    """
    now = as_utc(now) or utc_now()
    points: Dict[str, MonthlyTrendPoint] = OrderedDict(
        (key, MonthlyTrendPoint(month=key)) for key in _month_keys(months, now)
    )

    for quote in quotes:
        created_at = as_utc(quote.created_at)
        if created_at is None:
            continue
        point = points.get(created_at.strftime("%Y-%m"))
        if point is None:
            continue
        point.quotes += 1
        point.amount += quote.total_amount
        if quote.status == QuoteStatus.ACCEPTED:
            point.accepted += 1
            point.accepted_amount += quote.total_amount

    return list(points.values())


def top_products(lines: Iterable[QuoteLineRecord], limit: int = 10) -> List[TopProduct]:
    """
    Products ranked by summed line total, highest first.

    Lines are grouped by product name. ``quote_count`` counts distinct quotes
    when lines carry a ``quote_id`` and lines otherwise.
    """
    totals: Dict[str, Dict] = OrderedDict()
    for line in lines:
        entry = totals.setdefault(line.product_name, {
            "quantity": ZERO, "total_amount": ZERO, "quotes": set(), "anonymous": 0,
        })
        entry["quantity"] += line.quantity
        entry["total_amount"] += line.line_total
        if line.quote_id:
            entry["quotes"].add(line.quote_id)
        else:
            entry["anonymous"] += 1

    products = [
        TopProduct(
            product_name=name,
            quantity=entry["quantity"],
            total_amount=entry["total_amount"],
            quote_count=len(entry["quotes"]) + entry["anonymous"],
        )
        for name, entry in totals.items()
    ]
    # sorted() is stable, so equal totals keep first-seen order
    return sorted(products, key=lambda product: product.total_amount, reverse=True)[:limit]


def top_customers(quotes: Iterable[QuoteRecord], limit: int = 10) -> List[TopCustomer]:
    """Customers ranked by total quoted amount, highest first."""
    customers: Dict[str, TopCustomer] = OrderedDict()
    for quote in quotes:
        name = quote.customer_name or UNKNOWN_CUSTOMER
        customer = customers.get(name)
        if customer is None:
            customer = customers[name] = TopCustomer(
                customer_name=name, quote_count=0, total_amount=ZERO, accepted_count=0,
            )
        customer.quote_count += 1
        customer.total_amount += quote.total_amount
        if quote.status == QuoteStatus.ACCEPTED:
            customer.accepted_count += 1

    return sorted(customers.values(), key=lambda customer: customer.total_amount, reverse=True)[:limit]


def status_distribution(quotes: Iterable[QuoteRecord]) -> List[StatusBreakdown]:
    """Count and amount per status, in order of first appearance."""
    breakdown: Dict[str, StatusBreakdown] = OrderedDict()
    for quote in quotes:
        entry = breakdown.get(quote.status)
        if entry is None:
            entry = breakdown[quote.status] = StatusBreakdown(status=quote.status, count=0, amount=ZERO)
        entry.count += 1
        entry.amount += quote.total_amount
    return list(breakdown.values())


def _on_or_after(value: Optional[datetime], day: date) -> bool:
    value = as_utc(value)
    return value is not None and value.date() >= day


def approval_stats(quotes: Iterable[QuoteRecord], today: Optional[date] = None) -> ApprovalStats:
    """
    Approval queue counts.

    A rejection sends the quote back to draft with approval notes, so
    drafts with notes updated today count as rejected today.
    """
    today = today or utc_now().date()
    pending = approved_today = rejected_today = 0

    for quote in quotes:
        if quote.status == QuoteStatus.PENDING_APPROVAL:
            pending += 1
        elif quote.status == QuoteStatus.APPROVED and _on_or_after(quote.approved_at, today):
            approved_today += 1
        elif (
            quote.status == QuoteStatus.DRAFT
            and quote.approval_notes is not None
            and _on_or_after(quote.updated_at, today)
        ):
            rejected_today += 1

    return ApprovalStats(pending=pending, approved_today=approved_today, rejected_today=rejected_today)


def build_quote_analytics(
    quotes: Iterable[QuoteRecord],
    lines: Iterable[QuoteLineRecord] = (),
    months: int = 6,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> QuoteAnalytics:
    """Compute every dashboard section from one snapshot of rows."""
    quotes = list(quotes)
    now = as_utc(now) or utc_now()
    today = now.date()

    analytics = QuoteAnalytics(
        overview=analytics_overview(quotes, today),
        monthly_trend=monthly_trend(quotes, months, now),
        top_products=top_products(lines, limit),
        top_customers=top_customers(quotes, limit),
        status_distribution=status_distribution(quotes),
        approval_stats=approval_stats(quotes, today),
    )
    logger.debug("Analytics over %d quote(s) for %s", len(quotes), today)
    return analytics

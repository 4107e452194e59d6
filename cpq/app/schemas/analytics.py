"""
Quote analytics schemas.

Input records mirror the quote and quote line rows the caller already holds;
outputs feed the analytics dashboard.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from cpq.app.models.quote_enums import QuoteStatus


class QuoteRecord(BaseModel):
    """The quote header fields analytics needs."""
    id: Optional[str] = None
    status: Union[QuoteStatus, str] = Field(union_mode="left_to_right")
    total_amount: Decimal = Decimal("0")
    customer_name: Optional[str] = None
    valid_until: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None

    @field_validator("total_amount", mode="before")
    @classmethod
    def _missing_amount_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class QuoteLineRecord(BaseModel):
    """A stored quote line."""
    quote_id: Optional[str] = None
    product_name: str
    quantity: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")

    @field_validator("quantity", "line_total", mode="before")
    @classmethod
    def _missing_number_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class AnalyticsOverview(BaseModel):
    total_quotes: int
    total_amount: Decimal
    accepted_quotes: int
    accepted_amount: Decimal
    conversion_rate: Decimal  # Percent of responded-to quotes that were accepted
    average_deal_size: Decimal
    pending_quotes: int
    expired_quotes: int


class MonthlyTrendPoint(BaseModel):
    month: str  # YYYY-MM
    quotes: int = 0
    amount: Decimal = Decimal("0")
    accepted: int = 0
    accepted_amount: Decimal = Decimal("0")


class TopProduct(BaseModel):
    product_name: str
    quantity: Decimal
    total_amount: Decimal
    quote_count: int


class TopCustomer(BaseModel):
    customer_name: str
    quote_count: int
    total_amount: Decimal
    accepted_count: int


class StatusBreakdown(BaseModel):
    status: Union[QuoteStatus, str] = Field(union_mode="left_to_right")
    count: int
    amount: Decimal


class ApprovalStats(BaseModel):
    pending: int
    approved_today: int
    rejected_today: int


class QuoteAnalytics(BaseModel):
    """Everything the analytics dashboard shows."""
    overview: AnalyticsOverview
    monthly_trend: List[MonthlyTrendPoint]
    top_products: List[TopProduct]
    top_customers: List[TopCustomer]
    status_distribution: List[StatusBreakdown]
    approval_stats: ApprovalStats


# Request schemas

class QuoteAnalyticsRequest(BaseModel):
    """Schema for computing analytics over an org's quotes."""
    quotes: List[QuoteRecord] = Field(default_factory=list)
    lines: List[QuoteLineRecord] = Field(default_factory=list)
    months: int = Field(6, ge=1, le=36, description="Length of the monthly trend")
    limit: int = Field(10, ge=1, le=100, description="Size of the top product and customer lists")
    now: Optional[datetime] = Field(None, description="Reference time (defaults to UTC now)")

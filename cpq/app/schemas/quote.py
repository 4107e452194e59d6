"""
Quote schemas.

Defines the line, totals, approval and header records exchanged with the
quote editor.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cpq.app.models.pricing_enums import CustomerLevel
from cpq.app.models.quote_enums import QuoteStatus
from cpq.app.schemas.pricing import AppliedRuleInfo


class QuoteItem(BaseModel):
    """A priced line as far as totals are concerned."""
    unit_price: Decimal
    quantity: Decimal


class QuoteTotals(BaseModel):
    """Quote header amounts."""
    subtotal: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class QuoteLineInput(BaseModel):
    """
    A quote line before pricing.

    Lines without ``product_id`` are custom lines and keep their base price.
    """
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    product_name: str = Field(..., min_length=1, max_length=200)
    product_sku: Optional[str] = None
    quantity: Decimal
    base_price: Decimal
    unit: str = "件"
    notes: Optional[str] = None


class PricedQuoteLine(BaseModel):
    """A quote line after pricing, ready to persist."""
    product_id: Optional[str]
    category_id: Optional[str]
    product_name: str
    product_sku: Optional[str]
    quantity: Decimal
    unit: str
    original_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    discount_percentage: Decimal
    applied_rules: List[AppliedRuleInfo]
    sort_order: int
    notes: Optional[str] = None


class PricedQuote(BaseModel):
    """Every priced line plus the header totals."""
    lines: List[PricedQuoteLine]
    totals: QuoteTotals
    tax_rate: Decimal
    discount_amount: Decimal


class ApprovalSetting(BaseModel):
    """Quotes at or above ``threshold_amount`` need approval."""
    name: str
    threshold_amount: Decimal
    approver_role: str = "manager"
    is_active: bool = True


class ApprovalDecision(BaseModel):
    """New status after an approval step."""
    status: QuoteStatus
    requires_approval: bool = False
    approval_notes: Optional[str] = None
    decided_at: datetime


class QuoteHeaderDefaults(BaseModel):
    """Generated identifiers and defaults for a new quote header."""
    quote_number: str
    share_token: str
    status: QuoteStatus = QuoteStatus.DRAFT
    issue_date: date
    valid_until: date
    currency: str
    tax_rate: Decimal


# Request schemas

class QuoteTotalsRequest(BaseModel):
    """Schema for recomputing quote totals."""
    items: List[QuoteItem] = Field(default_factory=list)
    tax_rate: Optional[Decimal] = Field(None, description="Defaults to the configured tax rate")
    discount_amount: Decimal = Decimal("0")


class QuotePriceRequest(BaseModel):
    """Schema for pricing every line of a quote."""
    org_id: str
    customer_level: CustomerLevel
    lines: List[QuoteLineInput] = Field(default_factory=list)
    rules: List[Dict[str, Any]] = Field(default_factory=list, description="Raw pricing rule rows")
    tax_rate: Optional[Decimal] = None
    discount_amount: Decimal = Decimal("0")
    now: Optional[datetime] = None


class ApprovalCheckRequest(BaseModel):
    """Schema for submitting a quote for approval."""
    total_amount: Decimal
    settings: List[ApprovalSetting] = Field(default_factory=list)
    status: QuoteStatus = QuoteStatus.DRAFT


class QuoteDefaultsRequest(BaseModel):
    """Schema for generating new quote header defaults."""
    issue_date: Optional[date] = None
    valid_until: Optional[date] = None
    tax_rate: Optional[Decimal] = None
    currency: Optional[str] = None

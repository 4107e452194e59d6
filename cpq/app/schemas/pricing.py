"""
Pricing schemas.

Rule conditions are a tagged union keyed by ``kind``. Rows coming from the
rule repository carry an untyped ``conditions`` object; see
``cpq.app.domain.pricing.rule_parser`` for the conversion.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cpq.app.core.timeutils import as_utc
from cpq.app.models.pricing_enums import CustomerLevel, DiscountType, RuleType


class TierConditions(BaseModel):
    """Quantity window. ``max_qty`` unset means no upper bound."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["tier"] = "tier"
    min_qty: Decimal = Decimal("0")
    max_qty: Optional[Decimal] = None

    @field_validator("min_qty", mode="before")
    @classmethod
    def _falsy_min_is_zero(cls, value: Any) -> Any:
        return value or Decimal("0")


class CustomerLevelConditions(BaseModel):
    """Customer tier match. ``level`` unset matches every tier."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["customer_level"] = "customer_level"
    level: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def _blank_level_is_wildcard(cls, value: Any) -> Any:
        return value or None


class BundleConditions(BaseModel):
    """Products that make up the bundle. An empty list never matches."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["bundle"] = "bundle"
    product_ids: List[str] = Field(default_factory=list)

    @field_validator("product_ids", mode="before")
    @classmethod
    def _missing_list_is_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [str(product_id) for product_id in value]
        return value


class PromotionConditions(BaseModel):
    """Inclusive time window. An absent bound is unbounded on that side."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["promotion"] = "promotion"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _to_utc(cls, value: Any) -> Any:
        return as_utc(value)


class OpenConditions(BaseModel):
    """Conditions of a rule type the engine does not know. Always matches."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["open"] = "open"
    payload: Dict[str, Any] = Field(default_factory=dict)


class MalformedConditions(BaseModel):
    """Conditions that failed validation. Never matches."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["malformed"] = "malformed"
    payload: Any = None
    reason: str = ""


RuleConditions = Annotated[
    Union[
        TierConditions,
        CustomerLevelConditions,
        BundleConditions,
        PromotionConditions,
        OpenConditions,
        MalformedConditions,
    ],
    Field(discriminator="kind"),
]


class PricingContext(BaseModel):
    """
    Everything needed to price one quote line.

    Quantity and price are validated by the calculator, not here, so that
    contract violations surface as domain errors.
    """
    model_config = ConfigDict(frozen=True)

    product_id: str
    category_id: Optional[str] = None
    quantity: Decimal
    customer_level: CustomerLevel
    base_price: Decimal
    org_id: str


class PricingRule(BaseModel):
    """
    A validated pricing rule.

    ``rule_type`` and ``discount_type`` keep unknown values as plain strings.
    Discount values that could push a price below zero (negative values, or
    percentages above 100) make the row unusable.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    org_id: str
    rule_type: Union[RuleType, str] = Field(union_mode="left_to_right")
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    conditions: RuleConditions
    discount_type: Union[DiscountType, str] = Field(union_mode="left_to_right")
    discount_value: Decimal
    priority: int = 0
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("id", "org_id", "product_id", "category_id", mode="before")
    @classmethod
    def _ids_as_strings(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _to_utc(cls, value: Any) -> Any:
        return as_utc(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _missing_priority_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("name", mode="before")
    @classmethod
    def _missing_name_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _discount_value_in_range(self) -> "PricingRule":
        if self.discount_value < 0:
            raise ValueError(f"discount_value must not be negative, got {self.discount_value}")
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError(f"percentage discount_value must not exceed 100, got {self.discount_value}")
        return self


class AppliedRuleInfo(BaseModel):
    """One entry of the pricing audit trail."""
    rule_id: str
    rule_name: str
    rule_type: Union[RuleType, str] = Field(union_mode="left_to_right")
    discount_type: Union[DiscountType, str] = Field(union_mode="left_to_right")
    discount_value: Decimal
    discount_amount: Decimal  # Currency amount actually taken off
    priority: int


class PricingResult(BaseModel):
    """Outcome of pricing one line."""
    original_price: Decimal
    final_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    applied_rules: List[AppliedRuleInfo] = Field(default_factory=list)


# Request schemas

class PricingCalculateRequest(BaseModel):
    """Schema for pricing a single line against a rule catalog."""
    context: PricingContext
    rules: List[Dict[str, Any]] = Field(default_factory=list, description="Raw pricing rule rows")
    now: Optional[datetime] = Field(None, description="Evaluation time for promotion windows")


class ApplicableRulesResponse(BaseModel):
    """Best rule per type, in application order."""
    rules: List[PricingRule]
    skipped_rows: int = 0

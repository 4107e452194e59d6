"""
Pricing enumerations.
"""

import enum


class RuleType(str, enum.Enum):
    """Pricing rule categories. A rule belongs to exactly one."""
    TIER = "tier"  # Quantity thresholds
    CUSTOMER_LEVEL = "customer_level"  # VIP / normal / new
    BUNDLE = "bundle"  # Product combinations
    PROMOTION = "promotion"  # Time-boxed discounts


# Application order of rule types. Independent of rule priority.
RULE_TYPE_ORDER = (
    RuleType.PROMOTION,
    RuleType.BUNDLE,
    RuleType.TIER,
    RuleType.CUSTOMER_LEVEL,
)


class DiscountType(str, enum.Enum):
    """How a rule's discount_value is interpreted."""
    PERCENTAGE = "percentage"  # Percent off the running price
    FIXED = "fixed"  # Absolute amount off
    PRICE_OVERRIDE = "price_override"  # Replacement price


class CustomerLevel(str, enum.Enum):
    """Customer tier enumeration."""
    VIP = "vip"
    NORMAL = "normal"
    NEW = "new"

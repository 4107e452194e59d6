"""
Quote enumerations.
"""

import enum


class QuoteStatus(str, enum.Enum):
    """
    Quote status enumeration.

    Flow:
        DRAFT -> PENDING_APPROVAL -> APPROVED -> SENT -> ACCEPTED / REJECTED
        DRAFT -> APPROVED (total below every approval threshold)
        PENDING_APPROVAL -> DRAFT (approval rejected)
    """
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

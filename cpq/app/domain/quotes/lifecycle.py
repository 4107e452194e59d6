"""
Quote lifecycle helpers.

Header defaults, approval thresholds and status transitions. Each function
takes the current values and returns the new ones; writing them back is the
caller's business.
"""

import logging
import secrets
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from cpq.app.core.config import settings
from cpq.app.core.exceptions import QuoteExpiredError, QuoteStateError
from cpq.app.core.timeutils import utc_now, utc_today
from cpq.app.domain.pricing.money import to_decimal
from cpq.app.models.quote_enums import QuoteStatus
from cpq.app.schemas.quote import ApprovalDecision, ApprovalSetting, QuoteHeaderDefaults
from cpq.app.services.audit import AuditAction, log_event

logger = logging.getLogger("cpq.quotes")


def generate_quote_number(now: Optional[datetime] = None) -> str:
    """
    Quote number in the form ``Q-YYYYMM-NNNN``.

    NNNN is the last four digits of the epoch-millisecond timestamp.
    """
    now = now or utc_now()
    year_month = now.strftime("%Y%m")
    millis = int(now.timestamp() * 1000)
    return f"{settings.quote_number_prefix}-{year_month}-{str(millis)[-4:].zfill(4)}"


def generate_share_token() -> str:
    """Opaque token for the customer-facing quote link."""
    return secrets.token_hex(16)


def build_quote_defaults(
    issue_date: Optional[date] = None,
    valid_until: Optional[date] = None,
    tax_rate: Optional[Decimal] = None,
    currency: Optional[str] = None,
    now: Optional[datetime] = None,
) -> QuoteHeaderDefaults:
    """Defaults for a new draft quote header."""
    now = now or utc_now()
    issue_date = issue_date or now.date()
    return QuoteHeaderDefaults(
        quote_number=generate_quote_number(now),
        share_token=generate_share_token(),
        status=QuoteStatus.DRAFT,
        issue_date=issue_date,
        valid_until=valid_until or issue_date + timedelta(days=settings.default_quote_validity_days),
        currency=currency or settings.default_currency,
        tax_rate=settings.default_tax_rate if tax_rate is None else to_decimal(tax_rate),
    )


def requires_approval(total_amount: Decimal, approval_settings: Iterable[ApprovalSetting]) -> bool:
    """True when any active threshold is at or below the quote total."""
    total = to_decimal(total_amount)
    return any(
        total >= setting.threshold_amount
        for setting in approval_settings
        if setting.is_active
    )


def _require_status(current: QuoteStatus, action: str, allowed: tuple) -> None:
    if current not in allowed:
        raise QuoteStateError(current.value, action, tuple(status.value for status in allowed))


def submit_for_approval(
    status: QuoteStatus,
    total_amount: Decimal,
    approval_settings: Iterable[ApprovalSetting],
) -> ApprovalDecision:
    """
    Submit a draft.

    Goes to PENDING_APPROVAL when a threshold is hit, straight to APPROVED
    otherwise.

    Raises:
        QuoteStateError: If the quote is not a draft.
    """
    _require_status(status, "submit", (QuoteStatus.DRAFT,))

    needs_approval = requires_approval(total_amount, approval_settings)
    new_status = QuoteStatus.PENDING_APPROVAL if needs_approval else QuoteStatus.APPROVED

    log_event(AuditAction.QUOTE_SUBMITTED, metadata={
        "total_amount": str(total_amount),
        "requires_approval": needs_approval,
        "status": new_status.value,
    })
    return ApprovalDecision(
        status=new_status,
        requires_approval=needs_approval,
        decided_at=utc_now(),
    )


def approve_quote(status: QuoteStatus, notes: Optional[str] = None) -> ApprovalDecision:
    """
    Approve a pending quote.

    Raises:
        QuoteStateError: If the quote is not pending approval.
    """
    _require_status(status, "approve", (QuoteStatus.PENDING_APPROVAL,))
    log_event(AuditAction.QUOTE_APPROVED, metadata={"notes": notes})
    return ApprovalDecision(
        status=QuoteStatus.APPROVED,
        requires_approval=True,
        approval_notes=notes or None,
        decided_at=utc_now(),
    )


def reject_approval(status: QuoteStatus, reason: str) -> ApprovalDecision:
    """
    Send a pending quote back to draft.

    Raises:
        QuoteStateError: If the quote is not pending approval.
    """
    _require_status(status, "reject", (QuoteStatus.PENDING_APPROVAL,))
    log_event(AuditAction.QUOTE_APPROVAL_REJECTED, metadata={"reason": reason})
    return ApprovalDecision(
        status=QuoteStatus.DRAFT,
        requires_approval=True,
        approval_notes=f"Rejection reason: {reason}",
        decided_at=utc_now(),
    )


def mark_sent(status: QuoteStatus) -> QuoteStatus:
    """Approved (or already sent) quotes can be sent to the customer."""
    _require_status(status, "send", (QuoteStatus.APPROVED, QuoteStatus.SENT))
    log_event(AuditAction.QUOTE_SENT)
    return QuoteStatus.SENT


def is_expired(valid_until: Optional[date], today: Optional[date] = None) -> bool:
    """A quote expires at 00:00 UTC on its ``valid_until`` date."""
    if valid_until is None:
        return False
    return valid_until <= (today or utc_today())


def accept_by_customer(
    status: QuoteStatus,
    valid_until: Optional[date],
    today: Optional[date] = None,
) -> QuoteStatus:
    """
    Customer accepts via the share link.

    Raises:
        QuoteStateError: If the quote was not sent.
        QuoteExpiredError: If the quote is past its validity date.
    """
    _require_status(status, "accept", (QuoteStatus.SENT,))
    if is_expired(valid_until, today):
        logger.info("Acceptance refused, quote expired on %s", valid_until)
        raise QuoteExpiredError(valid_until)
    log_event(AuditAction.QUOTE_ACCEPTED)
    return QuoteStatus.ACCEPTED


def reject_by_customer(status: QuoteStatus, reason: Optional[str] = None) -> QuoteStatus:
    """
    Customer rejects via the share link.

    Raises:
        QuoteStateError: If the quote was not sent.
    """
    _require_status(status, "reject", (QuoteStatus.SENT,))
    log_event(AuditAction.QUOTE_REJECTED, metadata={"reason": reason})
    return QuoteStatus.REJECTED

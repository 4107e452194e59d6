"""
Quote lifecycle tests: header defaults, approval thresholds and status
transitions.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from cpq.app.core.exceptions import QuoteExpiredError, QuoteStateError
from cpq.app.domain.quotes.lifecycle import (
    accept_by_customer,
    approve_quote,
    build_quote_defaults,
    generate_quote_number,
    generate_share_token,
    is_expired,
    mark_sent,
    reject_approval,
    reject_by_customer,
    requires_approval,
    submit_for_approval,
)
from cpq.app.models.quote_enums import QuoteStatus
from cpq.app.schemas.quote import ApprovalSetting

SETTINGS = [
    ApprovalSetting(name="Manager", threshold_amount=Decimal("10000"), approver_role="manager"),
    ApprovalSetting(name="Director", threshold_amount=Decimal("50000"), approver_role="director"),
]


# Header defaults

def test_quote_number_format():
    now = datetime(2026, 3, 9, 8, 30, 12, 345000, tzinfo=timezone.utc)
    number = generate_quote_number(now)
    millis = str(int(now.timestamp() * 1000))

    assert number == f"Q-202603-{millis[-4:]}"
    assert re.fullmatch(r"Q-\d{6}-\d{4}", number)


def test_share_token_is_32_hex_chars_and_unique():
    first, second = generate_share_token(), generate_share_token()
    assert re.fullmatch(r"[0-9a-f]{32}", first)
    assert first != second


def test_defaults_use_configured_values():
    defaults = build_quote_defaults(now=datetime(2026, 1, 20, tzinfo=timezone.utc))

    assert defaults.status == QuoteStatus.DRAFT
    assert defaults.issue_date == date(2026, 1, 20)
    assert defaults.valid_until == date(2026, 2, 19)
    assert defaults.currency == "TWD"
    assert defaults.tax_rate == Decimal("0.05")


def test_defaults_respect_overrides():
    defaults = build_quote_defaults(
        issue_date=date(2026, 5, 1),
        valid_until=date(2026, 5, 15),
        tax_rate=Decimal("0"),
        currency="USD",
    )

    assert defaults.valid_until == date(2026, 5, 15)
    assert defaults.tax_rate == Decimal("0")
    assert defaults.currency == "USD"


# Approval thresholds

@pytest.mark.parametrize("total, expected", [
    (Decimal("9999.99"), False),
    (Decimal("10000"), True),
    (Decimal("75000"), True),
])
def test_threshold_is_inclusive(total, expected):
    assert requires_approval(total, SETTINGS) is expected


def test_inactive_thresholds_are_ignored():
    inactive = [ApprovalSetting(name="Off", threshold_amount=Decimal("1"), is_active=False)]
    assert requires_approval(Decimal("1000000"), inactive) is False


def test_no_settings_never_require_approval():
    assert requires_approval(Decimal("1000000"), []) is False


def test_submit_large_draft_goes_pending():
    decision = submit_for_approval(QuoteStatus.DRAFT, Decimal("20000"), SETTINGS)
    assert decision.status == QuoteStatus.PENDING_APPROVAL
    assert decision.requires_approval is True


def test_submit_small_draft_is_approved_directly():
    decision = submit_for_approval(QuoteStatus.DRAFT, Decimal("500"), SETTINGS)
    assert decision.status == QuoteStatus.APPROVED
    assert decision.requires_approval is False


@pytest.mark.parametrize("status", [QuoteStatus.SENT, QuoteStatus.APPROVED, QuoteStatus.PENDING_APPROVAL])
def test_only_drafts_can_be_submitted(status):
    with pytest.raises(QuoteStateError) as exc_info:
        submit_for_approval(status, Decimal("1"), SETTINGS)
    assert exc_info.value.status_code == 409


# Approval decisions

def test_approve_pending_quote():
    decision = approve_quote(QuoteStatus.PENDING_APPROVAL, notes="Margin ok")
    assert decision.status == QuoteStatus.APPROVED
    assert decision.approval_notes == "Margin ok"


def test_rejected_approval_returns_to_draft_with_reason():
    decision = reject_approval(QuoteStatus.PENDING_APPROVAL, "Discount too deep")
    assert decision.status == QuoteStatus.DRAFT
    assert "Discount too deep" in decision.approval_notes


def test_cannot_approve_a_draft():
    with pytest.raises(QuoteStateError):
        approve_quote(QuoteStatus.DRAFT)


# Sending and customer response

def test_approved_and_sent_quotes_can_be_sent():
    assert mark_sent(QuoteStatus.APPROVED) == QuoteStatus.SENT
    assert mark_sent(QuoteStatus.SENT) == QuoteStatus.SENT


def test_draft_cannot_be_sent():
    with pytest.raises(QuoteStateError):
        mark_sent(QuoteStatus.DRAFT)


def test_customer_accepts_sent_quote_the_day_before_validity_ends():
    status = accept_by_customer(QuoteStatus.SENT, date(2026, 6, 30), today=date(2026, 6, 29))
    assert status == QuoteStatus.ACCEPTED


@pytest.mark.parametrize("today", [date(2026, 6, 30), date(2026, 7, 1)])
def test_customer_cannot_accept_expired_quote(today):
    with pytest.raises(QuoteExpiredError):
        accept_by_customer(QuoteStatus.SENT, date(2026, 6, 30), today=today)


def test_customer_cannot_accept_unsent_quote():
    with pytest.raises(QuoteStateError):
        accept_by_customer(QuoteStatus.APPROVED, None)


def test_customer_rejects_sent_quote():
    assert reject_by_customer(QuoteStatus.SENT, "Too expensive") == QuoteStatus.REJECTED


def test_customer_cannot_reject_accepted_quote():
    with pytest.raises(QuoteStateError):
        reject_by_customer(QuoteStatus.ACCEPTED)


def test_quote_without_validity_date_never_expires():
    assert is_expired(None, today=date(2099, 1, 1)) is False


@pytest.mark.parametrize("today, expected", [
    (date(2026, 6, 29), False),
    (date(2026, 6, 30), True),
    (date(2026, 7, 1), True),
])
def test_quote_expires_at_start_of_valid_until_day(today, expected):
    assert is_expired(date(2026, 6, 30), today=today) is expected

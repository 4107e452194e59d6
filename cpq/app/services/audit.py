"""
Audit logging service for pricing and quote workflow events.

Events go to the ``cpq.audit`` logger as structured records; shipping them
to durable storage is the job of whatever handler the deployment attaches.
"""

import logging
from typing import Any, Dict, Optional

from cpq.app.core.observability import current_correlation_id

audit_logger = logging.getLogger("cpq.audit")


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Pricing
    PRICE_CALCULATED = "PRICE_CALCULATED"
    QUOTE_PRICED = "QUOTE_PRICED"
    QUOTE_TOTALS_CALCULATED = "QUOTE_TOTALS_CALCULATED"

    # Approval workflow
    QUOTE_SUBMITTED = "QUOTE_SUBMITTED"
    QUOTE_APPROVED = "QUOTE_APPROVED"
    QUOTE_APPROVAL_REJECTED = "QUOTE_APPROVAL_REJECTED"
    QUOTE_SENT = "QUOTE_SENT"

    # Customer response
    QUOTE_ACCEPTED = "QUOTE_ACCEPTED"
    QUOTE_REJECTED = "QUOTE_REJECTED"


def log_event(
    action: str,
    org_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO,
) -> Dict[str, Any]:
    """
    Record an audit event.

    Args:
        action: Action being recorded (use AuditAction constants)
        org_id: Tenant the event belongs to
        metadata: Additional context

    Returns:
        The structured record that was logged
    """
    record = {
        "action": action,
        "org_id": org_id,
        "correlation_id": current_correlation_id(),
        "metadata": metadata or {},
    }
    audit_logger.log(level, action, extra={"audit": record})
    return record

"""
Time helpers.

Every comparison in the pricing core happens between timezone-aware UTC
datetimes. Naive values and bare dates are read as UTC.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def as_utc(value: Any) -> Optional[datetime]:
    """
    Coerce a datetime, date or ISO string into an aware UTC datetime.

    Empty values return None. A bare date means midnight UTC.

    Raises:
        ValueError: If a string cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text) if "T" in text or " " in text else date.fromisoformat(text)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise ValueError(f"Unsupported date value: {value!r}")

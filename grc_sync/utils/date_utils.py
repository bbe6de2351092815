"""
Date and time utilities.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser


def get_current_timestamp() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime from a backend payload.

    Accepts datetimes, ISO-8601 strings and the looser formats dateutil
    understands. Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parser.isoparse(value) if "T" in str(value) else parser.parse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

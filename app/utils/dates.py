"""Timezone helpers. All stored datetimes are timezone-aware UTC."""
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are interpreted as UTC.

    Examples:
        >>> ensure_utc(datetime(2025, 1, 1)).tzinfo
        datetime.timezone.utc
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional number of days from start to end."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 86400


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]

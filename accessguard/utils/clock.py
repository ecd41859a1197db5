"""Timezone helpers shared by the access-control core."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime.

    Some drivers (SQLite in particular) hand back naive datetimes for
    ``TIMESTAMP WITH TIME ZONE`` columns; those are stored in UTC, so the
    offset is attached rather than converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

"""
Shared time helpers.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

# A clock returns the current time as an aware UTC datetime
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Default clock source."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; values stored by this package are always UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

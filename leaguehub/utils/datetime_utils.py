"""
Datetime utility functions.

All timestamps in the system are timezone-aware UTC. Expiry of invitations
and suspensions is evaluated lazily by comparing against utcnow() at read time.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Tag naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def days_from_now(days: int) -> datetime:
    """Return the UTC instant ``days`` days after now."""
    return utcnow() + timedelta(days=days)


def is_in_future(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    True when ``value`` is set and strictly after ``now``.

    Used for lazy expiry: a suspension or invitation with a timestamp in the
    past is simply treated as expired, no background job flips its state.
    """
    if value is None:
        return False
    return ensure_utc(value) > (now or utcnow())


def has_passed(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when ``value`` is set and is strictly before ``now``."""
    if value is None:
        return False
    return ensure_utc(value) < (now or utcnow())

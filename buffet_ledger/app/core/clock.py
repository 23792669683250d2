"""
Time helpers.

Services take a `clock` callable so tests can move time; the default is the
real UTC clock. Some backends (SQLite) hand back naive datetimes, which are
normalized to UTC before any comparison.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_today(clock: Clock = utcnow) -> date:
    return as_utc(clock()).date()

"""
Centralized datetime utilities.

In memory, datetimes are timezone-aware UTC. The database stores naive UTC
(TIMESTAMP WITHOUT TIME ZONE), so values are converted at the repository
boundary with to_naive_utc / to_aware_utc.
"""

from datetime import datetime, date, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time, aware UTC."""
    return datetime.now(timezone.utc)


def naive_utc_now() -> datetime:
    """Current time as naive UTC, the storage convention for every column."""
    return utc_now().replace(tzinfo=None)


def utc_today() -> date:
    return utc_now().date()


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive UTC for database storage.

    Naive input is assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert a naive (UTC) or aware datetime to aware UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Aware UTC datetime `days` days before `now`."""
    return (now or utc_now()) - timedelta(days=days)


def format_date(value) -> str:
    """Format a date or datetime as YYYY-MM-DD, in UTC for datetimes."""
    if isinstance(value, datetime):
        value = to_aware_utc(value).date()
    return value.strftime("%Y-%m-%d")

"""
Time rules service.
Handles UTC normalization, calendar-day boundaries and elapsed hours.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional
import pytz
from ..config import settings


def utcnow() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(pytz.UTC)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC.
    Naive values (e.g. read back from SQLite) are taken to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(pytz.UTC)


def get_timezone(timezone_str: Optional[str] = None):
    """Resolve a timezone name, falling back to UTC if it is unknown."""
    try:
        return pytz.timezone(timezone_str or settings.stats_timezone)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def local_date(dt: datetime, timezone_str: Optional[str] = None) -> date:
    """Calendar date of an instant in the given timezone."""
    tz = get_timezone(timezone_str)
    return ensure_utc(dt).astimezone(tz).date()


def start_of_local_day(day: date, timezone_str: Optional[str] = None) -> datetime:
    """
    Midnight of a calendar date in the given timezone, as UTC.

    Args:
        day: Local calendar date
        timezone_str: Timezone string (defaults to STATS_TIMEZONE)

    Returns:
        UTC datetime (timezone-aware)
    """
    tz = get_timezone(timezone_str)
    local_midnight = tz.localize(datetime.combine(day, time.min))
    return local_midnight.astimezone(pytz.UTC)


def elapsed_hours(start: datetime, end: datetime) -> float:
    """Wall-clock hours between two instants (milliseconds / 3,600,000)."""
    delta: timedelta = ensure_utc(end) - ensure_utc(start)
    millis = delta.total_seconds() * 1000
    return millis / 3_600_000


def get_clock():
    """Clock dependency; tests override it with a fixed instant."""
    return utcnow

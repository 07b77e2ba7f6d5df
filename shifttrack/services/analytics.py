"""
Attendance analytics for managers.
Aggregates a rolling window of calendar days (today and the six days before
it by default) into per-staff hours and per-day clock-in statistics.
"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import Shift, User
from ..schemas.shifts import DailyStatOut, DashboardStatsOut, StaffHoursOut
from . import shift_store
from .permissions import Caller, require_manager
from .time_rules import elapsed_hours, ensure_utc, local_date, start_of_local_day, utcnow


def stats_window(
    now: datetime,
    timezone_str: Optional[str] = None,
    days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    Inclusive [start, end] bounds of the rolling window, in UTC.
    Start is local midnight of (today - days + 1); end is now.
    """
    days = days or settings.stats_window_days
    now = ensure_utc(now)
    today = local_date(now, timezone_str)
    first_day = today - timedelta(days=days - 1)
    return start_of_local_day(first_day, timezone_str), now


def compute_stats(
    shifts: Iterable[Shift],
    now: datetime,
    timezone_str: Optional[str] = None,
    days: Optional[int] = None,
) -> DashboardStatsOut:
    """
    Aggregate shifts into dashboard statistics.

    Args:
        shifts: Shifts with their user loaded; those outside the window are ignored
        now: Current instant
        timezone_str: Timezone for calendar-day bucketing (defaults to STATS_TIMEZONE)
        days: Window length in calendar days (defaults to STATS_WINDOW_DAYS)

    Returns:
        DashboardStatsOut with exactly `days` daily buckets, oldest first
    """
    days = days or settings.stats_window_days
    start, end = stats_window(now, timezone_str, days)
    today = local_date(end, timezone_str)

    # One bucket per calendar day, even for days without shifts
    buckets: Dict[date, Dict[str, float]] = {}
    for offset in range(days - 1, -1, -1):
        buckets[today - timedelta(days=offset)] = {"total_hours": 0.0, "count": 0}

    hours_by_email: Dict[str, float] = {}

    for shift in shifts:
        clock_in = ensure_utc(shift.clock_in)
        if clock_in < start or clock_in > end:
            continue

        bucket = buckets.get(local_date(clock_in, timezone_str))
        if bucket is None:
            continue
        bucket["count"] += 1

        if shift.clock_out is None:
            continue
        hours = elapsed_hours(clock_in, shift.clock_out)
        bucket["total_hours"] += hours
        email = shift.user.email
        hours_by_email[email] = hours_by_email.get(email, 0.0) + hours

    daily_stats = [
        DailyStatOut(
            date=day,
            clock_in_count=int(data["count"]),
            avg_hours=round(data["total_hours"] / data["count"], 2) if data["count"] > 0 else 0,
        )
        for day, data in sorted(buckets.items())
    ]
    staff_weekly_hours = [
        StaffHoursOut(email=email, total_hours=round(total, 2))
        for email, total in sorted(hours_by_email.items())
    ]
    return DashboardStatsOut(daily_stats=daily_stats, staff_weekly_hours=staff_weekly_hours)


def get_dashboard_stats(
    db: Session,
    caller: Optional[Caller],
    now: Optional[datetime] = None,
    timezone_str: Optional[str] = None,
) -> DashboardStatsOut:
    """Dashboard statistics for the manager's own organization."""
    caller = require_manager(caller)
    now = ensure_utc(now or utcnow())
    start, end = stats_window(now, timezone_str)
    shifts = shift_store.fetch_shifts_by_org_in_range(db, caller.organization_id, start, end)
    return compute_stats(shifts, now, timezone_str)


def active_staff(db: Session, caller: Optional[Caller]) -> List[User]:
    """Workers of the manager's organization who are currently clocked in."""
    caller = require_manager(caller)
    return shift_store.fetch_active_users_by_org(db, caller.organization_id)

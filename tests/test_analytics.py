from datetime import date, datetime, timedelta

import pytest
import pytz

from shifttrack.models.models import Shift, User
from shifttrack.schemas.shifts import DashboardStatsOut
from shifttrack.services import analytics
from shifttrack.services.errors import Forbidden
from shifttrack.services.time_rules import elapsed_hours

from conftest import NOW


def utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


def _shift(email, clock_in, clock_out=None):
    return Shift(clock_in=clock_in, clock_out=clock_out, user=User(email=email))


@pytest.fixture
def week_of_shifts():
    return [
        _shift("alice@sunrise.test", utc(2025, 3, 10, 9), utc(2025, 3, 10, 17)),   # Monday, 8h
        _shift("alice@sunrise.test", utc(2025, 3, 11, 9), utc(2025, 3, 11, 12, 30)),
        _shift("bob@sunrise.test", utc(2025, 3, 10, 10), utc(2025, 3, 10, 12)),
        _shift("bob@sunrise.test", utc(2025, 3, 12, 8)),                             # still open
        _shift("bob@sunrise.test", utc(2025, 3, 6, 0), utc(2025, 3, 6, 1)),          # first instant of window
        _shift("carol@sunrise.test", utc(2025, 3, 5, 23), utc(2025, 3, 6, 1)),       # before window
    ]


def test_window_starts_at_midnight_six_days_back():
    start, end = analytics.stats_window(NOW)
    assert start == utc(2025, 3, 6)
    assert end == NOW


def test_always_seven_ascending_days_even_without_shifts():
    stats = analytics.compute_stats([], NOW)

    assert [d.date for d in stats.daily_stats] == [date(2025, 3, 6) + timedelta(days=i) for i in range(7)]
    assert all(d.clock_in_count == 0 and d.avg_hours == 0 for d in stats.daily_stats)
    assert stats.staff_weekly_hours == []


def test_staff_weekly_hours_only_count_closed_shifts(week_of_shifts):
    stats = analytics.compute_stats(week_of_shifts, NOW)

    hours = {s.email: s.total_hours for s in stats.staff_weekly_hours}
    assert hours == {"alice@sunrise.test": 11.5, "bob@sunrise.test": 3.0}


def test_daily_stats_buckets(week_of_shifts):
    stats = analytics.compute_stats(week_of_shifts, NOW)
    by_day = {d.date: d for d in stats.daily_stats}

    assert (by_day[date(2025, 3, 6)].clock_in_count, by_day[date(2025, 3, 6)].avg_hours) == (1, 1.0)
    assert by_day[date(2025, 3, 7)].clock_in_count == 0
    assert (by_day[date(2025, 3, 10)].clock_in_count, by_day[date(2025, 3, 10)].avg_hours) == (2, 5.0)
    assert (by_day[date(2025, 3, 11)].clock_in_count, by_day[date(2025, 3, 11)].avg_hours) == (1, 3.5)
    # An open shift is counted but adds no hours
    assert (by_day[date(2025, 3, 12)].clock_in_count, by_day[date(2025, 3, 12)].avg_hours) == (1, 0)


def test_total_hours_match_closed_shifts_in_window(week_of_shifts):
    stats = analytics.compute_stats(week_of_shifts, NOW)
    start, end = analytics.stats_window(NOW)

    expected = sum(
        elapsed_hours(s.clock_in, s.clock_out)
        for s in week_of_shifts
        if s.clock_out is not None and start <= s.clock_in <= end
    )
    assert sum(s.total_hours for s in stats.staff_weekly_hours) == pytest.approx(expected, abs=0.01)


def test_shift_after_now_is_ignored():
    stats = analytics.compute_stats([_shift("alice@sunrise.test", NOW + timedelta(minutes=5))], NOW)
    assert sum(d.clock_in_count for d in stats.daily_stats) == 0


def test_hours_are_rounded_to_two_decimals():
    shifts = [_shift("alice@sunrise.test", utc(2025, 3, 11, 9), utc(2025, 3, 11, 9, 20))]
    stats = analytics.compute_stats(shifts, NOW)

    assert stats.staff_weekly_hours[0].total_hours == 0.33
    assert {d.date: d.avg_hours for d in stats.daily_stats}[date(2025, 3, 11)] == 0.33


def test_bucketing_follows_configured_timezone():
    # 20:30 in Kolkata on 2025-03-12
    shifts = [
        _shift("alice@sunrise.test", utc(2025, 3, 11, 20), utc(2025, 3, 11, 22)),  # 01:30 IST on the 12th
        _shift("bob@sunrise.test", utc(2025, 3, 5, 19), utc(2025, 3, 5, 20)),      # 00:30 IST on the 6th
    ]
    stats = analytics.compute_stats(shifts, NOW, timezone_str="Asia/Kolkata")
    counts = {d.date: d.clock_in_count for d in stats.daily_stats}

    assert counts[date(2025, 3, 12)] == 1
    assert counts[date(2025, 3, 6)] == 1
    assert counts[date(2025, 3, 11)] == 0


def test_dashboard_stats_scoped_to_manager_org(db, manager_caller, worker, make_org, make_user, add_shift):
    add_shift(worker, utc(2025, 3, 10, 9), utc(2025, 3, 10, 17))
    add_shift(worker, utc(2025, 2, 20, 9), utc(2025, 2, 20, 17))
    stranger = make_user(make_org(name="Elsewhere"), "carol@elsewhere.test")
    add_shift(stranger, utc(2025, 3, 10, 9), utc(2025, 3, 10, 10))

    stats = analytics.get_dashboard_stats(db, manager_caller, now=NOW)

    assert [(s.email, s.total_hours) for s in stats.staff_weekly_hours] == [("alice@sunrise.test", 8.0)]
    assert {d.date: d.clock_in_count for d in stats.daily_stats}[date(2025, 3, 10)] == 1
    assert len(stats.daily_stats) == 7


def test_dashboard_stats_require_manager(db, worker_caller):
    with pytest.raises(Forbidden):
        analytics.get_dashboard_stats(db, worker_caller, now=NOW)


def test_active_staff_lists_clocked_in_workers(db, org, manager_caller, worker, make_user, make_org, add_shift):
    bob = make_user(org, "bob@sunrise.test")
    add_shift(worker, NOW - timedelta(hours=2))
    add_shift(bob, NOW - timedelta(days=1, hours=8), NOW - timedelta(days=1))
    stranger = make_user(make_org(name="Elsewhere"), "carol@elsewhere.test")
    add_shift(stranger, NOW - timedelta(hours=1))

    assert [u.email for u in analytics.active_staff(db, manager_caller)] == ["alice@sunrise.test"]


def test_active_staff_requires_manager(db, worker_caller):
    with pytest.raises(Forbidden):
        analytics.active_staff(db, worker_caller)


def test_stats_are_response_models(week_of_shifts):
    stats = analytics.compute_stats(week_of_shifts, NOW)

    assert isinstance(stats, DashboardStatsOut)
    dumped = stats.model_dump(mode="json")
    assert dumped["daily_stats"][0] == {"date": "2025-03-06", "avg_hours": 1.0, "clock_in_count": 1}
    assert dumped["staff_weekly_hours"][0] == {"email": "alice@sunrise.test", "total_hours": 11.5}

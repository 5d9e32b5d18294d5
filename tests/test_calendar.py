"""
tests/test_calendar.py — Day Key & Continuity Tests
====================================================
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from twilight.engine.calendar import (
    Continuity,
    continuity,
    day_key,
    parse_day,
    today,
    week_start,
)

D = date(2026, 3, 11)


class TestContinuity:
    def test_no_stored_day_is_first(self):
        assert continuity(None, D) is Continuity.FIRST
        assert continuity("", D) is Continuity.FIRST

    def test_same_day(self):
        assert continuity("2026-03-11", D) is Continuity.SAME_DAY

    def test_yesterday_is_next_day(self):
        assert continuity("2026-03-10", D) is Continuity.NEXT_DAY

    def test_two_day_gap_is_broken(self):
        assert continuity("2026-03-09", D) is Continuity.BROKEN

    def test_future_date_is_broken(self):
        assert continuity("2026-03-12", D) is Continuity.BROKEN

    def test_month_boundary(self):
        assert continuity("2026-02-28", date(2026, 3, 1)) is Continuity.NEXT_DAY


class TestDayHelpers:
    def test_day_key_round_trip(self):
        assert day_key(D) == "2026-03-11"
        assert parse_day("2026-03-11") == D

    def test_week_start_is_monday(self):
        assert week_start(D) == date(2026, 3, 9)
        assert week_start(date(2026, 3, 9)) == date(2026, 3, 9)
        assert week_start(date(2026, 3, 15)) == date(2026, 3, 9)

    def test_today_uses_utc(self):
        # 23:30 at UTC-5 is already the next day in UTC.
        local = datetime(2026, 3, 11, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert today(local.astimezone(UTC)) == date(2026, 3, 12)

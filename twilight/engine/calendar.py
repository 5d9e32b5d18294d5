"""
twilight.engine.calendar — Day Keys & Day Continuity
=====================================================

Every streak and quest boundary in Twilight is a calendar day, stored as a
``YYYY-MM-DD`` string in UTC.  This module is the only place that turns
dates into keys and decides how two days relate; both the Streak Engine
and the Daily Reward Engine go through :func:`continuity`.

Pure calculation, no I/O.  Callers that need a fixed clock (tests, replays)
pass ``today`` explicitly.
"""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime, timedelta


class Continuity(enum.StrEnum):
    """How a stored day relates to today."""
    FIRST = "first"          # nothing stored yet
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"    # stored day is yesterday
    BROKEN = "broken"        # gap of two or more days, or a future date


def today(now: datetime | None = None) -> date:
    """Current UTC calendar date."""
    return (now or datetime.now(UTC)).date()


def day_key(d: date) -> str:
    return d.isoformat()


def parse_day(key: str) -> date:
    return date.fromisoformat(key)


def previous_day(d: date) -> date:
    return d - timedelta(days=1)


def next_day(d: date) -> date:
    return d + timedelta(days=1)


def week_start(d: date) -> date:
    """Monday of the ISO week containing *d*."""
    return d - timedelta(days=d.weekday())


def continuity(last_day: str | None, on: date) -> Continuity:
    """Classify the stored *last_day* key relative to *on*."""
    if not last_day:
        return Continuity.FIRST
    last = parse_day(last_day)
    if last == on:
        return Continuity.SAME_DAY
    if last == previous_day(on):
        return Continuity.NEXT_DAY
    return Continuity.BROKEN

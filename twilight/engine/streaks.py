"""
twilight.engine.streaks — Activity Streak State Machine
=========================================================

Pure calculation, no database I/O.  The service layer loads an
:class:`StreakState` from the ``activity_streaks`` row, calls
:func:`apply_activity`, and writes the resulting state and payouts back
in one transaction.

Each user sits in one of three day states:

    NO_ACTIVITY ──activity──▶ ACTIVE_TODAY ──thresholds met──▶ QUALIFIED_TODAY
         ▲                                                           │
         └──────────────────────── day rollover ◀────────────────────┘

The **day rollover** is the only transition that touches
``current_streak``:

* stored day was yesterday and qualified → streak + 1 (milestone check)
* stored day was yesterday, not qualified → streak carried
* gap of two or more days, or no stored day → streak reset to 0

Today's counters always restart from the incoming delta, and the
qualified flag always restarts at ``False``.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date

from twilight.engine.calendar import Continuity, continuity, day_key
from twilight.errors import ValidationFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_REQUIRED_VOICE_MINUTES = 5
DEFAULT_REQUIRED_MESSAGES = 5
DEFAULT_STREAK_REWARD_GEMS = 10

DEFAULT_MILESTONE_GEMS: dict[int, int] = {
    7: 50,
    14: 100,
    30: 250,
    60: 500,
    90: 1000,
}

_MILESTONE_KEY_RE = re.compile(r"^streak_milestone_(\d+)_gems$")


def milestone_key(day: int) -> str:
    """Settings key holding the gem payout for milestone *day*."""
    return f"streak_milestone_{day}_gems"


def parse_milestone_key(key: str) -> int | None:
    """Inverse of :func:`milestone_key`; ``None`` for any other key."""
    match = _MILESTONE_KEY_RE.match(key)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Typed settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StreakSettings:
    """Process-wide streak thresholds and payouts.

    Built by :class:`~twilight.engine.cache.SettingsCache` from the
    ``settings`` table and swapped atomically on reload.
    """

    required_voice_minutes: int = DEFAULT_REQUIRED_VOICE_MINUTES
    required_messages: int = DEFAULT_REQUIRED_MESSAGES
    streak_reward_gems: int = DEFAULT_STREAK_REWARD_GEMS
    milestones: Mapping[int, int] = field(
        default_factory=lambda: dict(DEFAULT_MILESTONE_GEMS)
    )

    def milestone_reward(self, day: int) -> int:
        """Gems for landing exactly on *day*, or 0."""
        return self.milestones.get(day, 0)

    def next_milestone(self, current_streak: int) -> int | None:
        """Smallest milestone day strictly above *current_streak*."""
        for day in sorted(self.milestones):
            if day > current_streak:
                return day
        return None

    def as_dict(self) -> dict:
        return {
            "required_voice_minutes": self.required_voice_minutes,
            "required_messages": self.required_messages,
            "streak_reward_gems": self.streak_reward_gems,
            "milestones": {day: self.milestones[day] for day in sorted(self.milestones)},
        }


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------
class DayState(enum.StrEnum):
    NO_ACTIVITY = "no_activity"
    ACTIVE_TODAY = "active_today"
    QUALIFIED_TODAY = "qualified_today"


@dataclass(slots=True)
class StreakState:
    """Plain mirror of an ``activity_streaks`` row."""

    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: str | None = None
    today_voice_minutes: int = 0
    today_messages: int = 0
    qualified_today: bool = False
    total_streak_days: int = 0

    def day_state(self, on: date) -> DayState:
        if self.last_activity_date != day_key(on):
            return DayState.NO_ACTIVITY
        if self.qualified_today:
            return DayState.QUALIFIED_TODAY
        return DayState.ACTIVE_TODAY


@dataclass(frozen=True, slots=True)
class StreakOutcome:
    """Result of one :func:`apply_activity` call."""

    state: StreakState
    continuity: Continuity
    advanced: bool = False
    qualified: bool = False
    reward: int = 0
    milestone_day: int | None = None
    milestone_reward: int = 0

    @property
    def total_gems(self) -> int:
        return self.reward + self.milestone_reward


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def roll_over(state: StreakState, on: date) -> tuple[StreakState, Continuity, bool]:
    """Apply the day-rollover transition for *on*.

    Returns ``(new_state, continuity, advanced)``.  On the same day the
    state is returned unchanged (as a copy).
    """
    kind = continuity(state.last_activity_date, on)
    new = replace(state)
    if kind is Continuity.SAME_DAY:
        return new, kind, False

    advanced = False
    if kind is Continuity.NEXT_DAY and state.qualified_today:
        new.current_streak = state.current_streak + 1
        new.longest_streak = max(state.longest_streak, new.current_streak)
        new.total_streak_days = state.total_streak_days + 1
        advanced = True
    elif kind is not Continuity.NEXT_DAY:
        new.current_streak = 0

    new.last_activity_date = day_key(on)
    new.today_voice_minutes = 0
    new.today_messages = 0
    new.qualified_today = False
    return new, kind, advanced


def apply_activity(
    state: StreakState,
    on: date,
    voice_minutes: int,
    messages: int,
    settings: StreakSettings,
) -> StreakOutcome:
    """Fold one activity delta into *state*.

    Qualification pays ``streak_reward_gems`` at most once per day.  A
    milestone pays only when a rollover advance lands exactly on a
    configured day.
    """
    if voice_minutes < 0 or messages < 0:
        raise ValidationFailed("Activity deltas must be non-negative")

    new, kind, advanced = roll_over(state, on)

    milestone_day: int | None = None
    milestone_reward = 0
    if advanced:
        milestone_reward = settings.milestone_reward(new.current_streak)
        if milestone_reward:
            milestone_day = new.current_streak

    new.today_voice_minutes += voice_minutes
    new.today_messages += messages

    qualified = False
    reward = 0
    if (
        not new.qualified_today
        and new.today_voice_minutes >= settings.required_voice_minutes
        and new.today_messages >= settings.required_messages
    ):
        new.qualified_today = True
        qualified = True
        reward = settings.streak_reward_gems

    return StreakOutcome(
        state=new,
        continuity=kind,
        advanced=advanced,
        qualified=qualified,
        reward=reward,
        milestone_day=milestone_day,
        milestone_reward=milestone_reward,
    )


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------
def streak_status(state: StreakState, on: date, settings: StreakSettings) -> dict:
    """Dashboard view of a streak as of *on*.

    Counters from a previous day are reported as zero; the stored row is
    not touched until the next activity rolls it over.
    """
    is_today = state.last_activity_date == day_key(on)
    voice = state.today_voice_minutes if is_today else 0
    messages = state.today_messages if is_today else 0
    qualified = state.qualified_today if is_today else False
    return {
        "current_streak": state.current_streak,
        "longest_streak": state.longest_streak,
        "total_streak_days": state.total_streak_days,
        "last_activity_date": state.last_activity_date,
        "day_state": state.day_state(on).value,
        "today_progress": {
            "voice_minutes": voice,
            "messages": messages,
            "qualified": qualified,
            "voice_remaining": max(0, settings.required_voice_minutes - voice),
            "messages_remaining": max(0, settings.required_messages - messages),
        },
        "next_milestone": settings.next_milestone(state.current_streak),
        "settings": settings.as_dict(),
    }

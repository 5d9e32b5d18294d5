"""
twilight.engine.daily_rewards — Daily Claim Schedule & Eligibility
===================================================================

The daily reward is an explicit once-per-day claim, separate from the
activity streak.  Its own claim streak continues when the previous claim
was yesterday and restarts at day 1 after any longer gap.

Schedule:

* Days 1–6 — fixed small rewards.
* Milestones 7 / 14 / 30 / 60 / 90 — large rewards flagged ``special``.
* Any other day — ``week = (day - 1) // 7 + 1``,
  ``gems = 40 + 5 * week``, ``respect = 3 + week // 2``.

Pure calculation, no database I/O.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date

from twilight.engine.calendar import Continuity, continuity, day_key, next_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DailyReward:
    day: int
    gems: int
    respect: int
    description: str
    special: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


MILESTONE_DAYS: tuple[int, ...] = (7, 14, 30, 60, 90)

_SCHEDULE: dict[int, DailyReward] = {
    1: DailyReward(1, 10, 1, "Day 1"),
    2: DailyReward(2, 15, 1, "Day 2"),
    3: DailyReward(3, 20, 2, "Day 3"),
    4: DailyReward(4, 25, 2, "Day 4"),
    5: DailyReward(5, 30, 3, "Day 5"),
    6: DailyReward(6, 40, 3, "Day 6"),
    7: DailyReward(7, 100, 10, "Week Milestone!", special=True),
    14: DailyReward(14, 250, 25, "2-Week Milestone!", special=True),
    30: DailyReward(30, 500, 50, "Month Milestone!", special=True),
    60: DailyReward(60, 1000, 100, "2-Month Milestone!", special=True),
    90: DailyReward(90, 2000, 200, "3-Month Milestone!", special=True),
}


def reward_for_day(day: int) -> DailyReward:
    """Reward paid for claim-streak *day* (1-based)."""
    if day < 1:
        raise ValueError(f"Claim day must be >= 1, got {day}")
    if day in _SCHEDULE:
        return _SCHEDULE[day]
    week = (day - 1) // 7 + 1
    return DailyReward(day, 40 + 5 * week, 3 + week // 2, f"Day {day}")


def milestone_at_or_after(day: int) -> int | None:
    """Smallest milestone ≥ *day*; stored as ``next_milestone`` after a claim."""
    for milestone in MILESTONE_DAYS:
        if milestone >= day:
            return milestone
    return None


def milestone_after(day: int) -> int | None:
    """Smallest milestone strictly after *day*; shown to users as the next goal."""
    for milestone in MILESTONE_DAYS:
        if milestone > day:
            return milestone
    return None


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ClaimDecision:
    can_claim: bool
    streak_day: int | None = None
    streak_broken: bool = False
    reason: str | None = None
    next_claim_date: str | None = None

    def as_dict(self) -> dict:
        body: dict = {"can_claim": self.can_claim}
        if self.can_claim:
            body["streak_day"] = self.streak_day
            body["streak_broken"] = self.streak_broken
        else:
            body["reason"] = self.reason
            body["next_claim_date"] = self.next_claim_date
        return body


def evaluate_claim(last_claim_date: str | None, current_streak: int, on: date) -> ClaimDecision:
    """Decide whether a claim on *on* is allowed and which day it pays.

    A broken streak does not block the claim; it restarts at day 1 and is
    flagged so the caller can tell the user.
    """
    kind = continuity(last_claim_date, on)
    if kind is Continuity.SAME_DAY:
        return ClaimDecision(
            can_claim=False,
            reason="already_claimed_today",
            next_claim_date=day_key(next_day(on)),
        )
    if kind is Continuity.BROKEN:
        return ClaimDecision(can_claim=True, streak_day=1, streak_broken=True)
    return ClaimDecision(can_claim=True, streak_day=current_streak + 1)


def streak_alive(last_claim_date: str | None, on: date) -> bool:
    """True while a claim today would continue the current streak."""
    return continuity(last_claim_date, on) in (Continuity.SAME_DAY, Continuity.NEXT_DAY)


def upcoming_rewards(current_streak: int, days: int = 7) -> list[dict]:
    """Preview of the next *days* rewards after *current_streak*."""
    return [
        {
            **reward_for_day(day).as_dict(),
            "is_milestone": day in MILESTONE_DAYS,
        }
        for day in range(current_streak + 1, current_streak + 1 + days)
    ]

"""
twilight.engine.quests — Quest Templates & Generation Windows
==============================================================

Fixed template pools and the period arithmetic for quest rotation:

* **Daily** — 3 of 6 templates, valid ``[today, tomorrow)``.
* **Weekly** — 2 of 4 templates, valid ``[monday, monday + 7)``.

Pure calculation; persistence and idempotency checks live in
:mod:`twilight.services.quest_service`.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta

from twilight.database.models import QuestRequirement
from twilight.engine.calendar import day_key, next_day, week_start

logger = logging.getLogger(__name__)

DAILY_PICK = 3
WEEKLY_PICK = 2


@dataclass(frozen=True, slots=True)
class QuestTemplate:
    requirement_type: QuestRequirement
    name: str
    description: str
    requirement_value: int
    reward_gems: int
    reward_respect: int


@dataclass(frozen=True, slots=True)
class QuestWindow:
    """Half-open validity window, as day keys."""

    start_date: str
    end_date: str
    is_weekly: bool

    @property
    def quest_type(self) -> str:
        return "weekly" if self.is_weekly else "daily"


# ---------------------------------------------------------------------------
# Template pools
# ---------------------------------------------------------------------------
DAILY_TEMPLATES: tuple[QuestTemplate, ...] = (
    QuestTemplate(QuestRequirement.VOICE, "Vocal Legend", "Stay in voice for 30 minutes", 30, 5, 2),
    QuestTemplate(QuestRequirement.VOICE, "Chatterbox", "Stay in voice for 60 minutes", 60, 10, 5),
    QuestTemplate(QuestRequirement.MESSAGES, "Text Master", "Send 20 messages", 20, 5, 2),
    QuestTemplate(QuestRequirement.MESSAGES, "Conversation King", "Send 50 messages", 50, 10, 5),
    QuestTemplate(QuestRequirement.RESPECT, "Generous Soul", "Give 3 Respect", 3, 5, 0),
    QuestTemplate(QuestRequirement.FRIENDS, "Social Butterfly", "Add 2 new friends", 2, 10, 3),
)

WEEKLY_TEMPLATES: tuple[QuestTemplate, ...] = (
    QuestTemplate(
        QuestRequirement.VOICE, "Weekly Warrior",
        "Stay in voice for 300 minutes this week", 300, 50, 20,
    ),
    QuestTemplate(
        QuestRequirement.MESSAGES, "Message Marathon",
        "Send 500 messages this week", 500, 50, 20,
    ),
    QuestTemplate(QuestRequirement.STREAK, "Streak Master", "Maintain a 7-day streak", 7, 100, 30),
    QuestTemplate(
        QuestRequirement.RESPECT, "Respectful",
        "Give 20 Respect this week", 20, 75, 10,
    ),
)


# ---------------------------------------------------------------------------
# Windows & selection
# ---------------------------------------------------------------------------
def daily_window(on: date) -> QuestWindow:
    return QuestWindow(day_key(on), day_key(next_day(on)), is_weekly=False)


def weekly_window(on: date) -> QuestWindow:
    monday = week_start(on)
    return QuestWindow(day_key(monday), day_key(monday + timedelta(days=7)), is_weekly=True)


def pick_templates(
    pool: tuple[QuestTemplate, ...],
    count: int,
    rng: random.Random | None = None,
) -> list[QuestTemplate]:
    """Choose *count* distinct templates from *pool* at random."""
    chooser = rng or random
    return chooser.sample(list(pool), k=min(count, len(pool)))


def is_active(start_date: str, end_date: str, on: date) -> bool:
    key = day_key(on)
    return start_date <= key < end_date


def apply_progress(progress: int, amount: int, requirement_value: int) -> tuple[int, bool]:
    """Return ``(new_progress, reached)``; progress never decreases."""
    new_progress = progress + max(0, amount)
    return new_progress, new_progress >= requirement_value

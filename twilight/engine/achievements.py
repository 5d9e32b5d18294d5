"""
twilight.engine.achievements — Badge & Achievement Evaluators
==============================================================

Handler-registry evaluation of one-time unlockables.  Each trigger type
maps to a pure handler ``(config, stats) -> bool`` that compares a
:class:`StatsSnapshot` of cumulative user stats against thresholds.

Two catalogues share the machinery:

* **Badges** — cosmetic, granted automatically once their requirements
  hold.  ``top_10`` is manual and maintained by the hourly ranking task.
* **Achievements** — each pays ``reward_gems`` once on unlock.

This module is pure calculation — no database I/O, no Discord I/O.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stats snapshot — passed to every trigger handler
# ---------------------------------------------------------------------------
VALID_STAT_FIELDS: frozenset[str] = frozenset({
    "voice_minutes",
    "messages",
    "respect",
    "respect_given",
    "friends",
    "streak",
    "longest_streak",
    "trades_completed",
    "quests_completed",
    "late_night_sessions",
    "achievements_unlocked",
})


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """Cumulative counters for one user at evaluation time."""

    voice_minutes: int = 0
    messages: int = 0
    respect: int = 0
    respect_given: int = 0
    friends: int = 0
    streak: int = 0
    longest_streak: int = 0
    trades_completed: int = 0
    quests_completed: int = 0
    late_night_sessions: int = 0
    achievements_unlocked: int = 0

    def get(self, field_name: str) -> int:
        if field_name not in VALID_STAT_FIELDS:
            return 0
        return getattr(self, field_name)


class TriggerType(enum.StrEnum):
    STAT_THRESHOLD = "stat_threshold"
    ALL_THRESHOLDS = "all_thresholds"
    MANUAL = "manual"


# ---------------------------------------------------------------------------
# Trigger handlers — pure functions (config, stats) → bool
# ---------------------------------------------------------------------------
def _check_stat_threshold(config: dict, stats: StatsSnapshot) -> bool:
    """Fires when one stat reaches a threshold.

    Config: {"field": "messages", "value": 1000}
    """
    field_name = config.get("field", "")
    value = config.get("value")
    if field_name not in VALID_STAT_FIELDS or value is None:
        return False
    return stats.get(field_name) >= value


def _check_all_thresholds(config: dict, stats: StatsSnapshot) -> bool:
    """Fires when every listed stat reaches its threshold.

    Config: {"requirements": {"voice_minutes": 100, "messages": 50}}
    """
    requirements = config.get("requirements") or {}
    if not requirements:
        return False
    return all(
        name in VALID_STAT_FIELDS and stats.get(name) >= value
        for name, value in requirements.items()
    )


TRIGGER_HANDLERS: dict[str, Callable[[dict, StatsSnapshot], bool]] = {
    TriggerType.STAT_THRESHOLD: _check_stat_threshold,
    TriggerType.ALL_THRESHOLDS: _check_all_thresholds,
    # TriggerType.MANUAL: never auto-triggered
}


# ---------------------------------------------------------------------------
# Catalogues
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Unlockable:
    id: str
    name: str
    description: str
    icon: str
    rarity: str
    trigger_type: TriggerType
    trigger_config: dict = field(default_factory=dict)
    reward_gems: int = 0
    category: str = "general"
    is_secret: bool = False

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": "???" if self.is_secret else self.description,
            "icon": self.icon,
            "rarity": self.rarity,
            "category": self.category,
            "reward_gems": self.reward_gems,
        }

    def requirement(self) -> tuple[str, int] | None:
        """``(field, value)`` for single-stat unlockables, used for progress bars."""
        if self.trigger_type is TriggerType.STAT_THRESHOLD:
            return self.trigger_config.get("field", ""), int(self.trigger_config.get("value", 0))
        return None


def _stat(id_: str, name: str, description: str, icon: str, rarity: str,
          field_name: str, value: int, reward_gems: int = 0,
          category: str = "general", is_secret: bool = False) -> Unlockable:
    return Unlockable(
        id=id_, name=name, description=description, icon=icon, rarity=rarity,
        trigger_type=TriggerType.STAT_THRESHOLD,
        trigger_config={"field": field_name, "value": value},
        reward_gems=reward_gems, category=category, is_secret=is_secret,
    )


TOP_BADGE_ID = "top_10"

BADGES: tuple[Unlockable, ...] = (
    Unlockable(
        "active_member", "Active Member", "Consistently active in voice and chat",
        "⚡", "epic", TriggerType.ALL_THRESHOLDS,
        {"requirements": {"voice_minutes": 100, "messages": 50}},
    ),
    _stat("friend", "Friend", "Has made friends in the community",
          "\U0001f499", "rare", "friends", 5),
    _stat("voice_enthusiast", "Voice Enthusiast", "Spent 500+ minutes in voice channels",
          "\U0001f399️", "epic", "voice_minutes", 500),
    _stat("chat_champion", "Chat Champion", "Sent 500+ messages",
          "\U0001f4ac", "epic", "messages", 500),
    _stat("streak_master", "Streak Master", "Maintained a 30-day activity streak",
          "\U0001f525", "epic", "streak", 30),
    _stat("respected", "Respected", "Earned 100+ respect points",
          "⭐", "rare", "respect", 100),
    Unlockable(
        TOP_BADGE_ID, "Top 10", "Currently one of the ten most active members",
        "\U0001f3c5", "legendary", TriggerType.MANUAL,
    ),
)

_BASE_ACHIEVEMENTS: tuple[Unlockable, ...] = (
    _stat("voice_novice", "Voice Novice", "Spend 60 minutes in voice channels",
          "\U0001f3a4", "common", "voice_minutes", 60, 50, "voice"),
    _stat("voice_enthusiast", "Voice Enthusiast", "Spend 500 minutes in voice channels",
          "\U0001f3a7", "uncommon", "voice_minutes", 500, 150, "voice"),
    _stat("voice_master", "Voice Master", "Spend 2000 minutes in voice channels",
          "\U0001f399️", "rare", "voice_minutes", 2000, 500, "voice"),
    _stat("night_owl", "Night Owl", "Be in voice between 12 AM - 6 AM ten times",
          "\U0001f989", "rare", "late_night_sessions", 10, 200, "voice"),
    _stat("chatterbox", "Chatterbox", "Send 1000 messages",
          "\U0001f4ac", "common", "messages", 1000, 100, "messages"),
    _stat("conversation_king", "Conversation King", "Send 5000 messages",
          "\U0001f451", "uncommon", "messages", 5000, 300, "messages"),
    _stat("message_legend", "Message Legend", "Send 20000 messages",
          "⭐", "epic", "messages", 20000, 1000, "messages"),
    _stat("streak_starter", "Streak Starter", "Maintain a 7-day streak",
          "\U0001f525", "common", "streak", 7, 100, "streaks"),
    _stat("loyal_member", "Loyal Member", "Maintain a 30-day streak",
          "\U0001f48e", "rare", "streak", 30, 500, "streaks"),
    _stat("dedication_master", "Dedication Master", "Maintain a 100-day streak",
          "\U0001f451", "legendary", "streak", 100, 2000, "streaks"),
    _stat("social_butterfly", "Social Butterfly", "Add 10 friends",
          "\U0001f98b", "common", "friends", 10, 150, "social"),
    _stat("generous_soul", "Generous Soul", "Give 100 respect to others",
          "\U0001f49d", "uncommon", "respect_given", 100, 300, "social"),
    _stat("respect_legend", "Respect Legend", "Receive 500 respect from others",
          "\U0001f31f", "rare", "respect", 500, 500, "social"),
    _stat("trader_novice", "Trader Novice", "Complete 10 trades",
          "\U0001f91d", "common", "trades_completed", 10, 100, "trading"),
    _stat("merchant", "Merchant", "Complete 50 trades",
          "\U0001f4b0", "rare", "trades_completed", 50, 500, "trading"),
    _stat("quest_hunter", "Quest Hunter", "Complete 20 quests",
          "\U0001f3af", "uncommon", "quests_completed", 20, 300, "quests"),
)

ACHIEVEMENTS: tuple[Unlockable, ...] = (
    *_BASE_ACHIEVEMENTS,
    _stat("completionist", "Completionist", "Unlock all non-secret achievements",
          "\U0001f3c6", "legendary", "achievements_unlocked", len(_BASE_ACHIEVEMENTS),
          5000, "secret", is_secret=True),
)

BADGES_BY_ID: dict[str, Unlockable] = {b.id: b for b in BADGES}


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def check_unlocks(
    catalog: Iterable[Unlockable],
    stats: StatsSnapshot,
    already_earned: set[str],
) -> list[Unlockable]:
    """Return the unlockables in *catalog* newly satisfied by *stats*."""
    newly: list[Unlockable] = []
    for item in catalog:
        if item.id in already_earned:
            continue
        handler = TRIGGER_HANDLERS.get(item.trigger_type)
        if handler is None:
            continue
        if handler(item.trigger_config, stats):
            newly.append(item)
            logger.info("Unlock triggered: %s", item.id)
    return newly


def activity_score(voice_minutes: int, messages: int, respect: int) -> float:
    """Ranking score for the top-10 badge."""
    return voice_minutes + messages * 0.5 + respect * 10

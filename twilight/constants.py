"""
twilight.constants — Shared Constants
======================================

Single source of truth for currency names, transaction types, trade
limits and presentation glyphs.  Import from here instead of duplicating
string literals in cogs, services, and routes.
"""

from __future__ import annotations

import enum


# ---------------------------------------------------------------------------
# Currencies
# ---------------------------------------------------------------------------
class Currency(enum.StrEnum):
    """Balances a user holds on the ``users`` row."""
    GEMS = "gems"
    RESPECT = "respect"


TRADEABLE_CURRENCIES: frozenset[str] = frozenset(c.value for c in Currency)


# ---------------------------------------------------------------------------
# Transaction types (append-only audit log)
# ---------------------------------------------------------------------------
class TransactionType(enum.StrEnum):
    STREAK_DAILY = "streak_daily"
    STREAK_MILESTONE = "streak_milestone"
    DAILY_REWARD = "daily_reward"
    QUEST_REWARD = "quest_reward"
    TRADE = "trade"
    RESPECT_GIVEN = "respect_given"
    RESPECT_TRANSFER = "respect_transfer"
    ACHIEVEMENT_REWARD = "achievement_reward"


# ---------------------------------------------------------------------------
# Social limits
# ---------------------------------------------------------------------------
RESPECT_COOLDOWN_HOURS = 24
RESPECT_TRANSFER_MIN = 1
RESPECT_TRANSFER_MAX = 25
RESPECT_TRANSFER_DAILY_LIMIT = 25

TRADE_HISTORY_LIMIT = 50
CLAIM_HISTORY_LIMIT = 30
STREAK_LEADERBOARD_LIMIT = 100
TOP_BADGE_SIZE = 10


# ---------------------------------------------------------------------------
# Leaderboard columns exposed over the API
# ---------------------------------------------------------------------------
LEADERBOARD_CURRENCIES: tuple[str, ...] = (
    "gems",
    "respect",
    "total_voice_minutes",
    "total_messages",
    "streak_count",
)


# ---------------------------------------------------------------------------
# Presentation (bot embeds)
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉
GEM_EMOJI = "\U0001f48e"      # 💎
RESPECT_EMOJI = "\U0001f91d"  # 🤝
FIRE_EMOJI = "\U0001f525"     # 🔥

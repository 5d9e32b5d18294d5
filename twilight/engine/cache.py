"""
twilight.engine.cache — In-Memory Settings Cache
=================================================

Holds the parsed ``settings`` table and the typed
:class:`~twilight.engine.streaks.StreakSettings` built from it.  Engines
read the typed object; nothing re-parses JSON strings on the hot path.

Invalidation is explicit: :mod:`twilight.services.settings_service` calls
:meth:`SettingsCache.reload` after every write, and the bot's task loop
reloads periodically so edits made through the API reach the bot process.

Usage::

    cache = SettingsCache(engine)
    cache.load_all()

    settings = cache.streak_settings()
    settings.required_voice_minutes      # 5
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.database.models import Setting
from twilight.engine.streaks import (
    DEFAULT_MILESTONE_GEMS,
    DEFAULT_REQUIRED_MESSAGES,
    DEFAULT_REQUIRED_VOICE_MINUTES,
    DEFAULT_STREAK_REWARD_GEMS,
    StreakSettings,
    parse_milestone_key,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def build_streak_settings(raw: Mapping[str, Any]) -> StreakSettings:
    """Build a :class:`StreakSettings` from parsed key/value settings.

    Unparseable values fall back to the defaults.  Milestones are every
    ``streak_milestone_<day>_gems`` key present; when none are stored the
    default ladder applies.
    """
    milestones: dict[int, int] = {}
    for key, value in raw.items():
        day = parse_milestone_key(key)
        if day is not None:
            milestones[day] = _as_int(value, DEFAULT_MILESTONE_GEMS.get(day, 0))

    return StreakSettings(
        required_voice_minutes=_as_int(
            raw.get("required_voice_minutes"), DEFAULT_REQUIRED_VOICE_MINUTES,
        ),
        required_messages=_as_int(raw.get("required_messages"), DEFAULT_REQUIRED_MESSAGES),
        streak_reward_gems=_as_int(raw.get("streak_reward_gems"), DEFAULT_STREAK_REWARD_GEMS),
        milestones=milestones or dict(DEFAULT_MILESTONE_GEMS),
    )


class SettingsCache:
    """Thread-safe in-memory view of the ``settings`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._streak = StreakSettings()

    # -------------------------------------------------------------------
    # Loading (synchronous, called via run_db or directly)
    # -------------------------------------------------------------------
    def load_all(self) -> None:
        """Load every setting from the DB and rebuild the typed view."""
        with Session(self._engine) as session:
            rows = session.scalars(select(Setting)).all()
            parsed: dict[str, Any] = {}
            for row in rows:
                try:
                    parsed[row.key] = json.loads(row.value_json)
                except (json.JSONDecodeError, TypeError):
                    parsed[row.key] = row.value_json

        streak = build_streak_settings(parsed)
        with self._lock:
            self._streak = streak
        logger.info("SettingsCache loaded: %d settings", len(parsed))

    def reload(self) -> None:
        self.load_all()

    # -------------------------------------------------------------------
    # Reads (thread-safe)
    # -------------------------------------------------------------------
    def streak_settings(self) -> StreakSettings:
        with self._lock:
            return self._streak

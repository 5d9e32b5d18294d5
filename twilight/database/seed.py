"""
twilight.database.seed — Default Settings Seeder
=================================================

Baseline streak settings seeded on first startup.  Idempotent: only
inserts keys that don't already exist, so admin edits are never
overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine

from twilight.database.engine import get_session
from twilight.database.models import Setting
from twilight.engine.streaks import (
    DEFAULT_MILESTONE_GEMS,
    DEFAULT_REQUIRED_MESSAGES,
    DEFAULT_REQUIRED_VOICE_MINUTES,
    DEFAULT_STREAK_REWARD_GEMS,
    milestone_key,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "required_voice_minutes": (
        DEFAULT_REQUIRED_VOICE_MINUTES, "streak",
        "Voice minutes needed in one day to qualify for the streak",
    ),
    "required_messages": (
        DEFAULT_REQUIRED_MESSAGES, "streak",
        "Messages needed in one day to qualify for the streak",
    ),
    "streak_reward_gems": (
        DEFAULT_STREAK_REWARD_GEMS, "streak", "Gems paid once per day on qualification",
    ),
    **{
        milestone_key(day): (gems, "streak", f"Gems paid when the streak reaches day {day}")
        for day, gems in DEFAULT_MILESTONE_GEMS.items()
    },
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine) -> int:
    """Insert default settings that don't yet exist.  Returns rows inserted."""
    inserted = 0
    with get_session(engine) as session:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
    return inserted

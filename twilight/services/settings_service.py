"""
twilight.services.settings_service — Streak Settings Read & Update
===================================================================

Typed read/write access to the streak tuning stored in the ``settings``
table.  Every write is recorded in ``admin_log`` with before/after
snapshots and hot-reloads the in-process
:class:`~twilight.engine.cache.SettingsCache`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from twilight.database.engine import get_session
from twilight.database.models import AdminActionType, AdminLog, Setting
from twilight.engine.streaks import milestone_key, parse_milestone_key
from twilight.errors import ValidationFailed

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from twilight.engine.cache import SettingsCache

logger = logging.getLogger(__name__)

STREAK_CATEGORY = "streak"

_FLAT_KEYS = frozenset({
    "required_voice_minutes",
    "required_messages",
    "streak_reward_gems",
})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_streak_settings(cache: SettingsCache) -> dict:
    """``{required_voice_minutes, required_messages, streak_reward_gems, milestones}``."""
    return cache.streak_settings().as_dict()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _non_negative_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationFailed(
            f"'{key}' must be a non-negative integer", reason="invalid_setting", key=key,
        )
    return value


def normalize_updates(updates: dict[str, Any]) -> dict[str, int]:
    """Flatten a partial update into ``settings`` keys.

    Accepts the flat keys, ``streak_milestone_<day>_gems`` keys, and a
    nested ``{"milestones": {day: gems}}`` map.  Anything else is
    rejected before any write happens.
    """
    if not updates:
        raise ValidationFailed("No settings provided", reason="empty_update")

    flat: dict[str, int] = {}
    for key, value in updates.items():
        if key == "milestones":
            if not isinstance(value, dict):
                raise ValidationFailed("'milestones' must be an object", reason="invalid_setting")
            for day, gems in value.items():
                try:
                    day_num = int(day)
                except (TypeError, ValueError):
                    raise ValidationFailed(
                        f"Invalid milestone day '{day}'", reason="invalid_setting",
                    ) from None
                if day_num <= 0:
                    raise ValidationFailed(
                        f"Invalid milestone day '{day}'", reason="invalid_setting",
                    )
                mkey = milestone_key(day_num)
                flat[mkey] = _non_negative_int(mkey, gems)
        elif key in _FLAT_KEYS or parse_milestone_key(key) is not None:
            flat[key] = _non_negative_int(key, value)
        else:
            raise ValidationFailed(f"Unknown setting '{key}'", reason="unknown_setting", key=key)
    return flat


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def update_streak_settings(
    engine: Engine,
    cache: SettingsCache,
    updates: dict[str, Any],
    *,
    actor_id: int,
) -> dict:
    """Apply a partial streak settings update and return the new settings."""
    flat = normalize_updates(updates)

    with get_session(engine) as session:
        for key, value in flat.items():
            existing = session.get(Setting, key)
            before = None
            if existing is not None:
                before = {"key": key, "value": json.loads(existing.value_json)}
                if before["value"] == value:
                    continue
                existing.value_json = json.dumps(value)
                existing.updated_by = actor_id
            else:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=STREAK_CATEGORY,
                    updated_by=actor_id,
                ))

            session.add(AdminLog(
                actor_id=actor_id,
                action_type=(AdminActionType.UPDATE if before else AdminActionType.CREATE).value,
                target_table="settings",
                target_id=key,
                before_snapshot=before,
                after_snapshot={"key": key, "value": value},
            ))

    logger.info("Streak settings updated by %s: %s", actor_id, sorted(flat))
    cache.reload()
    return get_streak_settings(cache)

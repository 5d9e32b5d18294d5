"""
twilight.services.activity_service — Discord Activity Ingest
=============================================================

Turns raw Discord activity into engine calls:

* :class:`VoiceSessionStore` — in-memory join tracking owned by the bot.
  A channel move closes the current segment and opens a new one, so
  minutes are credited per segment.
* :func:`record_message` / :func:`record_voice_minutes` — bump the
  user's cumulative counters, feed the streak engine and quest progress,
  then run the badge/achievement check.

Ingest runs from gateway handlers, so failures are logged and dropped;
nothing is retried.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from twilight.database.engine import get_session
from twilight.database.models import QuestRequirement, VoiceSession
from twilight.engine import calendar
from twilight.services.badge_service import award_unlocks
from twilight.services.ledger_service import get_or_create_user
from twilight.services.quest_service import add_progress
from twilight.services.streak_service import track_activity

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from twilight.engine.cache import SettingsCache

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Voice session store (in-memory)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ClosedSession:
    """A finished voice segment, ready to be persisted."""

    user_id: int
    channel_id: int
    joined_at: datetime
    left_at: datetime

    @property
    def minutes(self) -> int:
        return max(0, round((self.left_at - self.joined_at).total_seconds() / 60))


class VoiceSessionStore:
    """Keyed ``user_id → (channel_id, joined_at)`` for members in voice."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[int, tuple[int, datetime]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._sessions

    def start(self, user_id: int, channel_id: int, at: datetime | None = None) -> None:
        """Record a join.  A second join replaces the first."""
        with self._lock:
            self._sessions[user_id] = (channel_id, at or datetime.now(UTC))

    def move(self, user_id: int, channel_id: int, at: datetime | None = None) -> ClosedSession | None:
        """Close the current segment and open one in *channel_id*.

        A move with no tracked join just starts a session.
        """
        at = at or datetime.now(UTC)
        with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = (channel_id, at)
        if previous is None:
            return None
        return ClosedSession(user_id, previous[0], previous[1], at)

    def end(self, user_id: int, at: datetime | None = None) -> ClosedSession | None:
        """Pop the user's session.  Returns ``None`` when none was tracked."""
        with self._lock:
            previous = self._sessions.pop(user_id, None)
        if previous is None:
            return None
        return ClosedSession(user_id, previous[0], previous[1], at or datetime.now(UTC))

    def get(self, user_id: int) -> tuple[int, datetime] | None:
        with self._lock:
            return self._sessions.get(user_id)


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------
def _bump_counters(
    engine: Engine,
    user_id: int,
    username: str | None,
    *,
    messages: int = 0,
    voice_minutes: int = 0,
    session: ClosedSession | None = None,
    on: date,
) -> None:
    with get_session(engine) as db:
        user = get_or_create_user(db, user_id, username)
        user.total_messages += messages
        user.total_voice_minutes += voice_minutes
        if session is not None:
            db.add(VoiceSession(
                user_id=user_id,
                channel_id=session.channel_id,
                joined_at=session.joined_at,
                left_at=session.left_at,
                duration_minutes=voice_minutes,
            ))
        if messages:
            add_progress(db, user_id, QuestRequirement.MESSAGES, messages, on)
        if voice_minutes:
            add_progress(db, user_id, QuestRequirement.VOICE, voice_minutes, on)


def _check_unlocks(engine: Engine, user_id: int) -> None:
    try:
        with get_session(engine) as db:
            award_unlocks(db, user_id)
    except Exception:
        logger.exception("Unlock check failed for user %s", user_id)


def record_message(
    engine: Engine,
    cache: SettingsCache,
    user_id: int,
    username: str | None = None,
    *,
    today: date | None = None,
) -> dict:
    """Ingest one message.  Returns the streak tracking result."""
    on = today or calendar.today()
    try:
        _bump_counters(engine, user_id, username, messages=1, on=on)
    except Exception:
        logger.exception("Failed to record message for user %s", user_id)
        return {"qualified": False, "error": "Message ingest failed"}

    result = track_activity(engine, cache, user_id, 0, 1, today=on)
    _check_unlocks(engine, user_id)
    return result


def record_voice_minutes(
    engine: Engine,
    cache: SettingsCache,
    user_id: int,
    username: str | None,
    minutes: int,
    *,
    session: ClosedSession | None = None,
    today: date | None = None,
) -> dict:
    """Ingest a finished voice segment of *minutes*."""
    on = today or calendar.today()
    minutes = max(0, minutes)
    try:
        _bump_counters(engine, user_id, username, voice_minutes=minutes, session=session, on=on)
    except Exception:
        logger.exception("Failed to record voice minutes for user %s", user_id)
        return {"qualified": False, "error": "Voice ingest failed"}

    logger.debug("%s: +%d voice minutes", user_id, minutes)
    result = track_activity(engine, cache, user_id, minutes, 0, today=on)
    _check_unlocks(engine, user_id)
    return result


def record_voice_session(
    engine: Engine,
    cache: SettingsCache,
    session: ClosedSession,
    username: str | None = None,
) -> dict:
    """Persist a closed segment and credit its minutes on the day it ended."""
    return record_voice_minutes(
        engine, cache, session.user_id, username, session.minutes,
        session=session, today=session.left_at.astimezone(UTC).date(),
    )

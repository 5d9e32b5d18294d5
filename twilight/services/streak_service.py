"""
twilight.services.streak_service — Activity Streak Persistence
===============================================================

Loads a user's ``activity_streaks`` row, runs it through the pure state
machine in :mod:`twilight.engine.streaks`, and writes the new state, the
qualification reward, any milestone payout and the ``streak`` quest
progress back in **one** session transaction.

:func:`track_activity` is called from Discord event handlers, so it never
raises: failures are logged and reported as ``{"qualified": False, "error"}``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.constants import Currency, TransactionType
from twilight.database.engine import get_session
from twilight.database.models import ActivityStreak, QuestRequirement, User
from twilight.engine import calendar
from twilight.engine.ledger import LedgerPlan
from twilight.engine.streaks import StreakOutcome, StreakState, apply_activity, streak_status
from twilight.errors import TwilightError
from twilight.services.ledger_service import commit_plan, get_or_create_user
from twilight.services.quest_service import add_progress

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from twilight.engine.cache import SettingsCache

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Row ↔ state mapping
# ---------------------------------------------------------------------------
def _to_state(row: ActivityStreak) -> StreakState:
    return StreakState(
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_activity_date=row.last_activity_date,
        today_voice_minutes=row.today_voice_minutes,
        today_messages=row.today_messages,
        qualified_today=row.streak_qualified_today,
        total_streak_days=row.total_streak_days,
    )


def _write_state(row: ActivityStreak, state: StreakState) -> None:
    row.current_streak = state.current_streak
    row.longest_streak = state.longest_streak
    row.last_activity_date = state.last_activity_date
    row.today_voice_minutes = state.today_voice_minutes
    row.today_messages = state.today_messages
    row.streak_qualified_today = state.qualified_today
    row.total_streak_days = state.total_streak_days


def get_or_create_streak(session: Session, user_id: int) -> ActivityStreak:
    row = session.get(ActivityStreak, user_id, with_for_update=True)
    if row is None:
        row = ActivityStreak(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            last_activity_date=None,
            today_voice_minutes=0,
            today_messages=0,
            streak_qualified_today=False,
            total_streak_days=0,
        )
        session.add(row)
        session.flush()
    return row


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
def apply_streak_activity(
    session: Session,
    cache: SettingsCache,
    user_id: int,
    voice_minutes: int,
    messages: int,
    on: date,
) -> StreakOutcome:
    """Fold one activity delta into the user's streak inside *session*."""
    settings = cache.streak_settings()
    user = get_or_create_user(session, user_id)
    row = get_or_create_streak(session, user_id)

    outcome = apply_activity(_to_state(row), on, voice_minutes, messages, settings)

    plan = LedgerPlan()
    if outcome.milestone_reward:
        plan.credit(
            user_id, Currency.GEMS, outcome.milestone_reward,
            TransactionType.STREAK_MILESTONE,
            f"{outcome.milestone_day}-day streak milestone",
        )
    if outcome.reward:
        plan.credit(
            user_id, Currency.GEMS, outcome.reward,
            TransactionType.STREAK_DAILY,
            "Daily streak qualification",
        )
    commit_plan(session, plan)

    _write_state(row, outcome.state)
    user.streak_count = outcome.state.current_streak

    if outcome.advanced:
        add_progress(session, user_id, QuestRequirement.STREAK, 1, on)

    if outcome.qualified:
        logger.info("%s qualified for streak day (+%d gems)", user_id, outcome.reward)
    if outcome.milestone_day:
        logger.info(
            "%s reached %d-day streak milestone (+%d gems)",
            user_id, outcome.milestone_day, outcome.milestone_reward,
        )
    return outcome


def track_activity(
    engine: Engine,
    cache: SettingsCache,
    user_id: int,
    voice_minutes: int = 0,
    messages: int = 0,
    *,
    today: date | None = None,
) -> dict:
    """Record an activity delta and report today's qualification progress.

    Returns ``{qualified, reward?, voice, messages, required_voice,
    required_messages, current_streak, milestone_reward?}``.  Never raises:
    a failure comes back as ``{qualified: false, error, reason, status_code}``.
    """
    on = today or calendar.today()
    try:
        with get_session(engine) as session:
            outcome = apply_streak_activity(
                session, cache, user_id, voice_minutes, messages, on,
            )
    except TwilightError as exc:
        logger.warning("Activity tracking rejected for %s: %s", user_id, exc)
        return {
            "qualified": False, "error": exc.message,
            "reason": exc.reason, "status_code": exc.status_code,
        }
    except Exception:
        logger.exception("Error tracking activity for user %s", user_id)
        return {
            "qualified": False, "error": "Activity tracking failed",
            "reason": "internal_error", "status_code": 500,
        }

    settings = cache.streak_settings()
    result: dict = {
        "qualified": outcome.qualified,
        "voice": outcome.state.today_voice_minutes,
        "messages": outcome.state.today_messages,
        "required_voice": settings.required_voice_minutes,
        "required_messages": settings.required_messages,
        "current_streak": outcome.state.current_streak,
    }
    if outcome.qualified:
        result["reward"] = outcome.reward
    if outcome.milestone_reward:
        result["milestone_reward"] = outcome.milestone_reward
        result["milestone_day"] = outcome.milestone_day
    return result


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_streak_status(
    engine: Engine,
    cache: SettingsCache,
    user_id: int,
    *,
    today: date | None = None,
) -> dict:
    on = today or calendar.today()
    with Session(engine) as session:
        row = session.get(ActivityStreak, user_id)
        state = _to_state(row) if row is not None else StreakState()
    return streak_status(state, on, cache.streak_settings())


def get_streak_leaderboard(engine: Engine, limit: int = 100) -> list[dict]:
    """Users with a live streak, longest first."""
    with Session(engine) as session:
        rows = session.execute(
            select(ActivityStreak, User)
            .join(User, User.id == ActivityStreak.user_id)
            .where(ActivityStreak.current_streak > 0)
            .order_by(
                ActivityStreak.current_streak.desc(),
                ActivityStreak.longest_streak.desc(),
                User.id,
            )
            .limit(limit)
        ).all()
        return [
            {
                "rank": i + 1,
                "user_id": str(user.id),
                "username": user.username,
                "current_streak": streak.current_streak,
                "longest_streak": streak.longest_streak,
                "total_streak_days": streak.total_streak_days,
            }
            for i, (streak, user) in enumerate(rows)
        ]

"""
tests/test_streaks.py — Streak State Machine & Service Tests
=============================================================

Pure transitions in :mod:`twilight.engine.streaks` plus the persisted
flow in :mod:`twilight.services.streak_service` against SQLite.
"""

from __future__ import annotations

import pytest
from conftest import TODAY, balance, make_quest
from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.database.models import ActivityStreak, Transaction, UserQuest
from twilight.engine.calendar import Continuity
from twilight.engine.streaks import (
    DayState,
    StreakSettings,
    StreakState,
    apply_activity,
    parse_milestone_key,
    roll_over,
    streak_status,
)
from twilight.errors import ValidationFailed
from twilight.services.streak_service import (
    get_streak_leaderboard,
    get_streak_status,
    track_activity,
)

SETTINGS = StreakSettings()


def _state(**kw) -> StreakState:
    return StreakState(**kw)


# ===========================================================================
# Pure engine
# ===========================================================================
class TestRollOver:
    def test_qualified_yesterday_advances(self):
        state = _state(current_streak=3, longest_streak=3, last_activity_date="2026-03-10",
                       qualified_today=True, total_streak_days=3)
        new, kind, advanced = roll_over(state, TODAY)
        assert kind is Continuity.NEXT_DAY
        assert advanced
        assert new.current_streak == 4
        assert new.longest_streak == 4
        assert new.total_streak_days == 4
        assert new.qualified_today is False

    def test_unqualified_yesterday_carries(self):
        state = _state(current_streak=3, last_activity_date="2026-03-10", today_messages=2)
        new, _, advanced = roll_over(state, TODAY)
        assert not advanced
        assert new.current_streak == 3
        assert new.today_messages == 0

    def test_gap_resets(self):
        state = _state(current_streak=9, longest_streak=9, last_activity_date="2026-03-08",
                       qualified_today=True)
        new, kind, _ = roll_over(state, TODAY)
        assert kind is Continuity.BROKEN
        assert new.current_streak == 0
        assert new.longest_streak == 9

    def test_same_day_unchanged(self):
        state = _state(current_streak=2, last_activity_date="2026-03-11", today_voice_minutes=3)
        new, kind, advanced = roll_over(state, TODAY)
        assert kind is Continuity.SAME_DAY
        assert not advanced
        assert new == state
        assert new is not state


class TestApplyActivity:
    def test_qualifies_once_per_day(self):
        first = apply_activity(_state(), TODAY, 5, 5, SETTINGS)
        assert first.qualified
        assert first.reward == 10
        second = apply_activity(first.state, TODAY, 10, 10, SETTINGS)
        assert not second.qualified
        assert second.reward == 0
        assert second.state.today_voice_minutes == 15

    def test_needs_both_thresholds(self):
        out = apply_activity(_state(), TODAY, 30, 4, SETTINGS)
        assert not out.qualified
        assert out.state.day_state(TODAY) is DayState.ACTIVE_TODAY

    def test_new_user_does_not_bump_streak(self):
        out = apply_activity(_state(), TODAY, 5, 5, SETTINGS)
        assert out.state.current_streak == 0
        assert out.state.day_state(TODAY) is DayState.QUALIFIED_TODAY

    def test_milestone_on_advance(self):
        state = _state(current_streak=6, longest_streak=6, last_activity_date="2026-03-10",
                       qualified_today=True)
        out = apply_activity(state, TODAY, 5, 5, SETTINGS)
        assert out.state.current_streak == 7
        assert out.milestone_day == 7
        assert out.milestone_reward == 50
        assert out.total_gems == 60

    def test_custom_thresholds(self):
        settings = StreakSettings(required_voice_minutes=0, required_messages=1,
                                  streak_reward_gems=3, milestones={2: 7})
        out = apply_activity(_state(), TODAY, 0, 1, settings)
        assert out.qualified and out.reward == 3

    def test_negative_delta_rejected(self):
        with pytest.raises(ValidationFailed):
            apply_activity(_state(), TODAY, -1, 0, SETTINGS)


class TestStreakSettings:
    def test_next_milestone_is_strictly_greater(self):
        assert SETTINGS.next_milestone(0) == 7
        assert SETTINGS.next_milestone(7) == 14
        assert SETTINGS.next_milestone(90) is None

    def test_parse_milestone_key(self):
        assert parse_milestone_key("streak_milestone_30_gems") == 30
        assert parse_milestone_key("required_messages") is None

    def test_status_zeroes_stale_progress(self):
        state = _state(current_streak=2, last_activity_date="2026-03-09",
                       today_voice_minutes=4, today_messages=4)
        status = streak_status(state, TODAY, SETTINGS)
        assert status["today_progress"]["voice_minutes"] == 0
        assert status["today_progress"]["voice_remaining"] == 5
        assert status["day_state"] == DayState.NO_ACTIVITY.value


# ===========================================================================
# Service (SQLite)
# ===========================================================================
def _seed_streak(engine, user_id: int, **fields) -> None:
    from twilight.database.engine import get_session
    from twilight.services.ledger_service import get_or_create_user

    with get_session(engine) as session:
        get_or_create_user(session, user_id)
        session.add(ActivityStreak(
            user_id=user_id,
            current_streak=fields.get("current_streak", 0),
            longest_streak=fields.get("longest_streak", 0),
            last_activity_date=fields.get("last_activity_date"),
            today_voice_minutes=fields.get("today_voice_minutes", 0),
            today_messages=fields.get("today_messages", 0),
            streak_qualified_today=fields.get("qualified", False),
            total_streak_days=fields.get("total_streak_days", 0),
        ))


class TestTrackActivity:
    def test_new_user_qualifies(self, db_engine, settings_cache):
        result = track_activity(db_engine, settings_cache, 1, 5, 5, today=TODAY)
        assert result["qualified"] is True
        assert result["reward"] == 10
        assert result["voice"] == 5
        assert result["messages"] == 5
        assert balance(db_engine, 1) == (10, 0)

    def test_second_call_same_day_does_not_pay(self, db_engine, settings_cache):
        track_activity(db_engine, settings_cache, 1, 5, 5, today=TODAY)
        result = track_activity(db_engine, settings_cache, 1, 5, 5, today=TODAY)
        assert result["qualified"] is False
        assert "reward" not in result
        assert balance(db_engine, 1) == (10, 0)

    def test_seventh_day_pays_milestone(self, db_engine, settings_cache):
        _seed_streak(db_engine, 2, current_streak=6, longest_streak=6,
                     last_activity_date="2026-03-10", qualified=True)
        result = track_activity(db_engine, settings_cache, 2, 5, 5, today=TODAY)
        assert result["current_streak"] == 7
        assert result["milestone_reward"] == 50
        assert result["reward"] == 10
        assert balance(db_engine, 2) == (60, 0)

        with Session(db_engine) as session:
            types = sorted(session.scalars(
                select(Transaction.transaction_type).where(Transaction.user_id == 2)
            ).all())
        assert types == ["streak_daily", "streak_milestone"]

    def test_gap_resets_streak(self, db_engine, settings_cache):
        _seed_streak(db_engine, 3, current_streak=12, longest_streak=12,
                     last_activity_date="2026-03-01", qualified=True)
        result = track_activity(db_engine, settings_cache, 3, 1, 0, today=TODAY)
        assert result["current_streak"] == 0
        status = get_streak_status(db_engine, settings_cache, 3, today=TODAY)
        assert status["longest_streak"] == 12

    def test_advance_counts_toward_streak_quest(self, db_engine, settings_cache):
        quest_id = make_quest(db_engine, requirement_type="streak", requirement_value=7,
                              start="2026-03-09", end="2026-03-16", is_weekly=True)
        _seed_streak(db_engine, 4, current_streak=1, last_activity_date="2026-03-10",
                     qualified=True)
        track_activity(db_engine, settings_cache, 4, 1, 0, today=TODAY)
        with Session(db_engine) as session:
            uq = session.scalar(select(UserQuest).where(UserQuest.quest_id == quest_id))
        assert uq.progress == 1

    def test_negative_delta_reports_error(self, db_engine, settings_cache):
        result = track_activity(db_engine, settings_cache, 5, -5, 0, today=TODAY)
        assert result["qualified"] is False
        assert "error" in result
        assert result["status_code"] == 400
        assert result["reason"] == "invalid_request"
        assert balance(db_engine, 5) == (0, 0)

    def test_database_failure_is_swallowed(self, db_engine, settings_cache, monkeypatch):
        from twilight.services import streak_service

        def _boom(*args, **kwargs):
            raise RuntimeError("down")

        monkeypatch.setattr(streak_service, "apply_streak_activity", _boom)
        result = track_activity(db_engine, settings_cache, 6, 5, 5, today=TODAY)
        assert result == {
            "qualified": False, "error": "Activity tracking failed",
            "reason": "internal_error", "status_code": 500,
        }


class TestStreakReads:
    def test_status_for_unknown_user(self, db_engine, settings_cache):
        status = get_streak_status(db_engine, settings_cache, 999, today=TODAY)
        assert status["current_streak"] == 0
        assert status["next_milestone"] == 7

    def test_leaderboard_orders_by_current_streak(self, db_engine):
        _seed_streak(db_engine, 10, current_streak=3, longest_streak=5)
        _seed_streak(db_engine, 11, current_streak=8, longest_streak=8)
        _seed_streak(db_engine, 12, current_streak=0, longest_streak=20)
        board = get_streak_leaderboard(db_engine, limit=10)
        assert [row["user_id"] for row in board] == ["11", "10"]
        assert board[0]["rank"] == 1

    def test_updated_thresholds_apply_immediately(self, db_engine, settings_cache):
        from twilight.services.settings_service import update_streak_settings

        update_streak_settings(db_engine, settings_cache, {"required_messages": 1},
                               actor_id=1)
        result = track_activity(db_engine, settings_cache, 20, 5, 1, today=TODAY)
        assert result["qualified"] is True
        assert result["required_messages"] == 1


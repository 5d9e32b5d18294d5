"""
tests/test_achievements.py — Badge & Achievement Tests
========================================================

Covers the pure trigger handlers, the static catalogues, and the
persisted awarding flow (including achievement gem rewards and the
manual ``top_10`` badge).
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import TODAY, balance, make_quest, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.database.engine import get_session
from twilight.database.models import Transaction, User, UserAchievement, UserBadge, VoiceSession
from twilight.engine.achievements import (
    ACHIEVEMENTS,
    BADGES,
    TOP_BADGE_ID,
    StatsSnapshot,
    TriggerType,
    activity_score,
    check_unlocks,
)
from twilight.services.badge_service import (
    build_stats,
    check_user_unlocks,
    get_user_achievements,
    get_user_badges,
    refresh_top_badges,
)
from twilight.services.quest_service import update_progress


# ===========================================================================
# Pure evaluation
# ===========================================================================
class TestCatalogues:
    def test_ids_unique(self):
        assert len({b.id for b in BADGES}) == len(BADGES)
        assert len({a.id for a in ACHIEVEMENTS}) == len(ACHIEVEMENTS)

    def test_top_badge_is_manual(self):
        top = next(b for b in BADGES if b.id == TOP_BADGE_ID)
        assert top.trigger_type is TriggerType.MANUAL

    def test_completionist_counts_every_other_achievement(self):
        completionist = next(a for a in ACHIEVEMENTS if a.id == "completionist")
        assert completionist.is_secret
        assert completionist.requirement() == ("achievements_unlocked", len(ACHIEVEMENTS) - 1)
        assert completionist.as_dict()["description"] == "???"


class TestCheckUnlocks:
    def test_stat_threshold(self):
        stats = StatsSnapshot(messages=1000)
        ids = {a.id for a in check_unlocks(ACHIEVEMENTS, stats, set())}
        assert ids == {"chatterbox"}

    def test_already_earned_skipped(self):
        stats = StatsSnapshot(messages=1000)
        assert check_unlocks(ACHIEVEMENTS, stats, {"chatterbox"}) == []

    def test_all_thresholds_needs_every_stat(self):
        assert [b.id for b in check_unlocks(BADGES, StatsSnapshot(voice_minutes=100), set())] == []
        both = StatsSnapshot(voice_minutes=100, messages=50)
        assert [b.id for b in check_unlocks(BADGES, both, set())] == ["active_member"]

    def test_manual_never_fires(self):
        stats = StatsSnapshot(voice_minutes=10**6, messages=10**6, respect=10**6)
        assert TOP_BADGE_ID not in {b.id for b in check_unlocks(BADGES, stats, set())}

    def test_unknown_field_reads_zero(self):
        assert StatsSnapshot().get("password") == 0

    def test_activity_score(self):
        assert activity_score(100, 10, 2) == pytest.approx(125.0)


# ===========================================================================
# Persisted awarding
# ===========================================================================
def _set_totals(engine, user_id: int, **fields) -> None:
    with get_session(engine) as session:
        user = session.get(User, user_id)
        for name, value in fields.items():
            setattr(user, name, value)


class TestAwardUnlocks:
    def test_achievement_pays_gems_once(self, db_engine):
        make_user(db_engine, 1)
        _set_totals(db_engine, 1, total_voice_minutes=60)

        result = check_user_unlocks(db_engine, 1)
        assert [a["id"] for a in result["achievements"]] == ["voice_novice"]
        assert balance(db_engine, 1) == (50, 0)

        assert check_user_unlocks(db_engine, 1) == {"badges": [], "achievements": []}
        assert balance(db_engine, 1) == (50, 0)

        with Session(db_engine) as session:
            txn = session.scalar(select(Transaction))
        assert txn.transaction_type == "achievement_reward"
        assert txn.description == "Achievement: Voice Novice"

    def test_badges_granted_without_reward(self, db_engine):
        make_user(db_engine, 1)
        _set_totals(db_engine, 1, total_voice_minutes=100, total_messages=50)
        result = check_user_unlocks(db_engine, 1)
        assert [b["id"] for b in result["badges"]] == ["active_member"]
        assert [b["id"] for b in get_user_badges(db_engine, 1)] == ["active_member"]

    def test_completionist_in_same_pass(self, db_engine):
        make_user(db_engine, 1)
        with get_session(db_engine) as session:
            for ach in ACHIEVEMENTS:
                if ach.id not in {"completionist", "quest_hunter"}:
                    session.add(UserAchievement(user_id=1, achievement_id=ach.id))
        # Twenty completed quests is the last missing achievement.
        for i in range(20):
            make_quest(db_engine, requirement_type="voice", requirement_value=1, name=f"Q{i}")
        update_progress(db_engine, 1, "voice", 1, today=TODAY)

        result = check_user_unlocks(db_engine, 1)
        assert {a["id"] for a in result["achievements"]} == {"quest_hunter", "completionist"}
        assert balance(db_engine, 1) == (300 + 5000, 0)

    def test_late_night_sessions_counted(self, db_engine):
        make_user(db_engine, 1)
        with get_session(db_engine) as session:
            session.add(VoiceSession(
                user_id=1, channel_id=9,
                joined_at=datetime(2026, 3, 11, 2, 0, tzinfo=UTC),
                left_at=datetime(2026, 3, 11, 3, 0, tzinfo=UTC),
                duration_minutes=60,
            ))
            session.add(VoiceSession(
                user_id=1, channel_id=9,
                joined_at=datetime(2026, 3, 11, 20, 0, tzinfo=UTC),
                left_at=datetime(2026, 3, 11, 21, 0, tzinfo=UTC),
                duration_minutes=60,
            ))
        with Session(db_engine) as session:
            stats = build_stats(session, session.get(User, 1))
        assert stats.late_night_sessions == 1


class TestAchievementReads:
    def test_progress_and_hidden_secret(self, db_engine):
        make_user(db_engine, 1)
        _set_totals(db_engine, 1, total_messages=250)
        data = get_user_achievements(db_engine, 1)
        by_id = {a["id"]: a for a in data["achievements"]}
        assert "completionist" not in by_id
        assert by_id["chatterbox"]["progress"] == 250
        assert by_id["chatterbox"]["target"] == 1000
        assert by_id["chatterbox"]["unlocked"] is False
        assert data["unlocked_count"] == 0
        assert data["total"] == len(ACHIEVEMENTS)

    def test_unknown_user_has_zero_progress(self, db_engine):
        data = get_user_achievements(db_engine, 404)
        assert all(a.get("progress", 0) == 0 for a in data["achievements"])


class TestTopBadges:
    def test_grant_and_revoke(self, db_engine):
        for uid, voice in ((1, 500), (2, 300), (3, 100)):
            make_user(db_engine, uid)
            _set_totals(db_engine, uid, total_voice_minutes=voice)

        assert refresh_top_badges(db_engine, size=2) == {"granted": [1, 2], "revoked": []}

        _set_totals(db_engine, 3, total_voice_minutes=1000)
        assert refresh_top_badges(db_engine, size=2) == {"granted": [3], "revoked": [2]}

        with Session(db_engine) as session:
            holders = set(session.scalars(
                select(UserBadge.user_id).where(UserBadge.badge_id == TOP_BADGE_ID)
            ).all())
        assert holders == {1, 3}

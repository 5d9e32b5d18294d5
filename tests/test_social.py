"""
tests/test_social.py — Friends & Respect Tests
===============================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import TODAY, balance, make_friends, make_quest, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.database.models import UserQuest
from twilight.errors import InsufficientBalance, NotFound, RuleViolation, ValidationFailed
from twilight.services.social_service import (
    add_friend,
    give_respect,
    list_friends,
    remove_friend,
    transfer_respect,
)

NOON = datetime(2026, 3, 11, 12, 0, tzinfo=UTC)


class TestFriends:
    def test_add_is_mutual(self, db_engine):
        add_friend(db_engine, 1, 2, today=TODAY)
        assert [f["id"] for f in list_friends(db_engine, 1)] == ["2"]
        assert [f["id"] for f in list_friends(db_engine, 2)] == ["1"]

    def test_add_twice_rejected(self, db_engine):
        add_friend(db_engine, 1, 2, today=TODAY)
        with pytest.raises(RuleViolation) as exc_info:
            add_friend(db_engine, 2, 1, today=TODAY)
        assert exc_info.value.reason == "already_friends"

    def test_add_self_rejected(self, db_engine):
        with pytest.raises(ValidationFailed):
            add_friend(db_engine, 1, 1, today=TODAY)

    def test_remove_both_directions(self, db_engine):
        make_user(db_engine, 1)
        make_user(db_engine, 2)
        make_friends(db_engine, 1, 2)
        remove_friend(db_engine, 2, 1)
        assert list_friends(db_engine, 1) == []
        with pytest.raises(NotFound):
            remove_friend(db_engine, 1, 2)

    def test_add_counts_toward_friends_quest(self, db_engine):
        quest_id = make_quest(db_engine, requirement_type="friends", requirement_value=2)
        add_friend(db_engine, 1, 2, today=TODAY)
        result = add_friend(db_engine, 1, 3, today=TODAY)
        assert result["quests_completed"] == [quest_id]


class TestGiveRespect:
    def test_gives_one_point(self, db_engine):
        result = give_respect(db_engine, 1, 2, now=NOON)
        assert result["respect"] == 1
        assert balance(db_engine, 1) == (0, 0)

    def test_cooldown_per_pair(self, db_engine):
        give_respect(db_engine, 1, 2, now=NOON)
        with pytest.raises(RuleViolation) as exc_info:
            give_respect(db_engine, 1, 2, now=NOON + timedelta(hours=23))
        assert exc_info.value.reason == "cooldown"
        # A different receiver is unaffected.
        give_respect(db_engine, 1, 3, now=NOON + timedelta(hours=1))
        give_respect(db_engine, 1, 2, now=NOON + timedelta(hours=25))
        assert balance(db_engine, 2) == (0, 2)

    def test_counts_toward_respect_quest(self, db_engine):
        quest_id = make_quest(db_engine, requirement_type="respect", requirement_value=3)
        give_respect(db_engine, 1, 2, now=NOON)
        with Session(db_engine) as session:
            uq = session.scalar(select(UserQuest).where(UserQuest.quest_id == quest_id))
        assert uq.user_id == 1 and uq.progress == 1


class TestTransferRespect:
    @pytest.fixture
    def pair(self, db_engine):
        make_user(db_engine, 1, respect=40)
        make_user(db_engine, 2)
        make_friends(db_engine, 1, 2)
        return db_engine

    def test_moves_balance(self, pair):
        result = transfer_respect(pair, 1, 2, 10, today=TODAY)
        assert result == {"amount": 10, "remaining_today": 15}
        assert balance(pair, 1) == (0, 30)
        assert balance(pair, 2) == (0, 10)

    @pytest.mark.parametrize("amount", [0, 26])
    def test_amount_bounds(self, pair, amount):
        with pytest.raises(ValidationFailed):
            transfer_respect(pair, 1, 2, amount, today=TODAY)

    def test_daily_cap(self, pair):
        transfer_respect(pair, 1, 2, 20, today=TODAY)
        with pytest.raises(RuleViolation) as exc_info:
            transfer_respect(pair, 1, 2, 6, today=TODAY)
        assert exc_info.value.reason == "daily_limit"
        assert exc_info.value.details["remaining"] == 5
        transfer_respect(pair, 1, 2, 6, today=TODAY + timedelta(days=1))

    def test_requires_friendship(self, pair):
        make_user(pair, 3)
        with pytest.raises(RuleViolation):
            transfer_respect(pair, 1, 3, 5, today=TODAY)

    def test_insufficient_respect(self, pair):
        transfer_respect(pair, 1, 2, 5, today=TODAY)
        with pytest.raises(InsufficientBalance):
            transfer_respect(pair, 2, 1, 6, today=TODAY)
        assert balance(pair, 2) == (0, 5)

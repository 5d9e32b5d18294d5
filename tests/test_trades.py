"""
tests/test_trades.py — Trade Lifecycle Tests
=============================================

Settlement must be all-or-nothing: every test that expects a rejection
also checks that neither balance moved.
"""

from __future__ import annotations

import pytest
from conftest import balance, make_friends, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from twilight.database.engine import get_session
from twilight.database.models import Trade, Transaction, User
from twilight.errors import InsufficientBalance, NotFound, RuleViolation, ValidationFailed
from twilight.services.trade_service import (
    accept_trade,
    create_trade,
    get_user_trades,
    reject_trade,
)

SENDER, RECEIVER = 100, 200


@pytest.fixture
def friends(db_engine):
    make_user(db_engine, SENDER, gems=100, respect=0, username="sender")
    make_user(db_engine, RECEIVER, gems=0, respect=20, username="receiver")
    make_friends(db_engine, SENDER, RECEIVER)
    return db_engine


def _status(engine, trade_id: int) -> str:
    with Session(engine) as session:
        return session.get(Trade, trade_id).status


class TestCreateTrade:
    def test_creates_pending_trade(self, friends):
        result = create_trade(friends, SENDER, RECEIVER, "gems", 50, "respect", 10)
        assert _status(friends, result["trade_id"]) == "pending"
        # Creation moves nothing.
        assert balance(friends, SENDER) == (100, 0)

    def test_requires_friendship(self, db_engine):
        make_user(db_engine, 1, gems=50)
        make_user(db_engine, 2)
        with pytest.raises(RuleViolation) as exc_info:
            create_trade(db_engine, 1, 2, "gems", 10, "respect", 1)
        assert exc_info.value.reason == "not_friends"

    def test_self_trade_rejected(self, friends):
        with pytest.raises(ValidationFailed):
            create_trade(friends, SENDER, SENDER, "gems", 1, "respect", 1)

    def test_sender_must_cover_offer(self, friends):
        with pytest.raises(InsufficientBalance) as exc_info:
            create_trade(friends, SENDER, RECEIVER, "gems", 500, "respect", 1)
        assert str(exc_info.value) == "Insufficient gems"

    def test_unknown_currency_rejected(self, friends):
        with pytest.raises(ValidationFailed) as exc_info:
            create_trade(friends, SENDER, RECEIVER, "gold", 1, "respect", 1)
        assert exc_info.value.reason == "invalid_currency"


class TestAcceptTrade:
    def test_swaps_all_four_legs(self, friends):
        trade_id = create_trade(friends, SENDER, RECEIVER, "gems", 50, "respect", 10)["trade_id"]
        assert accept_trade(friends, trade_id, RECEIVER) == {
            "trade_id": trade_id, "status": "accepted",
        }
        assert balance(friends, SENDER) == (50, 10)
        assert balance(friends, RECEIVER) == (50, 10)

        with Session(friends) as session:
            rows = session.scalars(select(Transaction).order_by(Transaction.id)).all()
        assert [(r.user_id, r.currency, r.amount) for r in rows] == [
            (SENDER, "gems", -50),
            (RECEIVER, "respect", -10),
        ]
        assert rows[0].description.startswith(f"Trade #{trade_id}:")

    def test_receiver_short_leaves_everything_untouched(self, db_engine):
        make_user(db_engine, SENDER, gems=100)
        make_user(db_engine, RECEIVER, respect=5)
        make_friends(db_engine, SENDER, RECEIVER)
        trade_id = create_trade(db_engine, SENDER, RECEIVER, "gems", 50, "respect", 10)["trade_id"]

        with pytest.raises(InsufficientBalance) as exc_info:
            accept_trade(db_engine, trade_id, RECEIVER)
        assert str(exc_info.value) == "Insufficient respect"

        assert balance(db_engine, SENDER) == (100, 0)
        assert balance(db_engine, RECEIVER) == (0, 5)
        assert _status(db_engine, trade_id) == "pending"

    def test_sender_revalidated_at_accept(self, friends):
        trade_id = create_trade(friends, SENDER, RECEIVER, "gems", 80, "respect", 10)["trade_id"]
        second = create_trade(friends, SENDER, RECEIVER, "gems", 80, "respect", 5)["trade_id"]
        accept_trade(friends, second, RECEIVER)

        with pytest.raises(InsufficientBalance) as exc_info:
            accept_trade(friends, trade_id, RECEIVER)
        assert exc_info.value.user_id == SENDER
        assert balance(friends, SENDER) == (20, 5)

    def test_same_currency_receiver_must_hold_request(self, db_engine):
        make_user(db_engine, SENDER, gems=100)
        make_user(db_engine, RECEIVER, gems=5)
        make_friends(db_engine, SENDER, RECEIVER)
        trade_id = create_trade(db_engine, SENDER, RECEIVER, "gems", 50, "gems", 10)["trade_id"]

        with pytest.raises(InsufficientBalance) as exc_info:
            accept_trade(db_engine, trade_id, RECEIVER)
        assert exc_info.value.user_id == RECEIVER
        assert balance(db_engine, SENDER) == (100, 0)
        assert balance(db_engine, RECEIVER) == (5, 0)
        assert _status(db_engine, trade_id) == "pending"

    def test_same_currency_sender_must_still_hold_offer(self, db_engine):
        make_user(db_engine, SENDER, gems=100)
        make_user(db_engine, RECEIVER, gems=60)
        make_friends(db_engine, SENDER, RECEIVER)
        trade_id = create_trade(db_engine, SENDER, RECEIVER, "gems", 50, "gems", 60)["trade_id"]
        with get_session(db_engine) as session:
            session.get(User, SENDER).gems = 0

        with pytest.raises(InsufficientBalance) as exc_info:
            accept_trade(db_engine, trade_id, RECEIVER)
        assert exc_info.value.user_id == SENDER
        assert balance(db_engine, SENDER) == (0, 0)
        assert balance(db_engine, RECEIVER) == (60, 0)

    def test_only_receiver_can_accept(self, friends):
        trade_id = create_trade(friends, SENDER, RECEIVER, "gems", 10, "respect", 1)["trade_id"]
        with pytest.raises(NotFound):
            accept_trade(friends, trade_id, SENDER)

    def test_terminal_states_are_final(self, friends):
        trade_id = create_trade(friends, SENDER, RECEIVER, "gems", 10, "respect", 1)["trade_id"]
        accept_trade(friends, trade_id, RECEIVER)
        with pytest.raises(NotFound):
            accept_trade(friends, trade_id, RECEIVER)
        with pytest.raises(NotFound):
            reject_trade(friends, trade_id, RECEIVER)


class TestRejectAndHistory:
    def test_reject_moves_nothing(self, friends):
        trade_id = create_trade(friends, SENDER, RECEIVER, "gems", 10, "respect", 1)["trade_id"]
        assert reject_trade(friends, trade_id, RECEIVER)["status"] == "rejected"
        assert balance(friends, SENDER) == (100, 0)
        assert balance(friends, RECEIVER) == (0, 20)

    def test_history_includes_names(self, friends):
        create_trade(friends, SENDER, RECEIVER, "gems", 10, "respect", 1)
        rows = get_user_trades(friends, RECEIVER)
        assert len(rows) == 1
        assert rows[0]["sender_name"] == "sender"
        assert rows[0]["receiver_name"] == "receiver"
        assert rows[0]["sender_id"] == str(SENDER)

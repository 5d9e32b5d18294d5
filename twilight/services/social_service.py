"""
twilight.services.social_service — Friends & Respect
=====================================================

The friend graph is the prerequisite for trades and respect transfers.
Friendships are stored as two directed rows so lookups from either side
are a single primary-key probe.

Respect moves two ways:

* **give** — +1 to the receiver, free for the giver, once per
  giver→receiver pair every 24 hours.
* **transfer** — 1–25 respect moved from sender to a friend, capped at
  25 per sender per calendar day.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from twilight.constants import (
    RESPECT_COOLDOWN_HOURS,
    RESPECT_TRANSFER_DAILY_LIMIT,
    RESPECT_TRANSFER_MAX,
    RESPECT_TRANSFER_MIN,
    Currency,
    TransactionType,
)
from twilight.database.engine import get_session
from twilight.database.models import (
    Friendship,
    QuestRequirement,
    RespectGiven,
    RespectTransfer,
    User,
)
from twilight.engine import calendar
from twilight.engine.ledger import LedgerPlan
from twilight.errors import NotFound, RuleViolation, ValidationFailed
from twilight.services.ledger_service import commit_plan, get_or_create_user
from twilight.services.quest_service import add_progress

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _reject_self(a: int, b: int, message: str) -> None:
    if a == b:
        raise ValidationFailed(message, reason="self_reference")


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------
def are_friends(session: Session, user_id: int, other_id: int) -> bool:
    return session.get(Friendship, (user_id, other_id)) is not None


def add_friend(
    engine: Engine,
    user_id: int,
    friend_id: int,
    *,
    today: date | None = None,
) -> dict:
    _reject_self(user_id, friend_id, "Cannot add yourself as a friend")
    on = today or calendar.today()
    with get_session(engine) as session:
        get_or_create_user(session, user_id)
        get_or_create_user(session, friend_id)
        if are_friends(session, user_id, friend_id):
            raise RuleViolation("Already friends", reason="already_friends")

        session.add(Friendship(user_id=user_id, friend_id=friend_id))
        if session.get(Friendship, (friend_id, user_id)) is None:
            session.add(Friendship(user_id=friend_id, friend_id=user_id))
        session.flush()
        completed = add_progress(session, user_id, QuestRequirement.FRIENDS, 1, on)

    logger.info("Friendship created: %s ↔ %s", user_id, friend_id)
    return {"user_id": str(user_id), "friend_id": str(friend_id), "quests_completed": completed}


def remove_friend(engine: Engine, user_id: int, friend_id: int) -> None:
    with get_session(engine) as session:
        if not are_friends(session, user_id, friend_id):
            raise NotFound("Not friends", reason="not_friends")
        session.execute(
            delete(Friendship).where(
                ((Friendship.user_id == user_id) & (Friendship.friend_id == friend_id))
                | ((Friendship.user_id == friend_id) & (Friendship.friend_id == user_id))
            )
        )
    logger.info("Friendship removed: %s ↔ %s", user_id, friend_id)


def list_friends(engine: Engine, user_id: int) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(User)
            .join(Friendship, Friendship.friend_id == User.id)
            .where(Friendship.user_id == user_id)
            .order_by(User.username)
        ).all()
        return [
            {"id": str(u.id), "username": u.username, "respect": u.respect, "gems": u.gems}
            for u in rows
        ]


# ---------------------------------------------------------------------------
# Respect
# ---------------------------------------------------------------------------
def give_respect(
    engine: Engine,
    giver_id: int,
    receiver_id: int,
    *,
    now: datetime | None = None,
) -> dict:
    """Give one respect point.  Raises ``cooldown`` within 24 h of the last gift."""
    _reject_self(giver_id, receiver_id, "Cannot give respect to yourself")
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(hours=RESPECT_COOLDOWN_HOURS)

    with get_session(engine) as session:
        get_or_create_user(session, giver_id)
        receiver = get_or_create_user(session, receiver_id)

        last = session.scalar(
            select(func.max(RespectGiven.given_at)).where(
                RespectGiven.giver_id == giver_id,
                RespectGiven.receiver_id == receiver_id,
                RespectGiven.given_at > cutoff,
            )
        )
        if last is not None:
            raise RuleViolation("Already gave respect today", reason="cooldown")

        plan = LedgerPlan()
        plan.credit(receiver_id, Currency.RESPECT, 1,
                    TransactionType.RESPECT_GIVEN, f"Respect from {giver_id}")
        commit_plan(session, plan)
        session.add(RespectGiven(giver_id=giver_id, receiver_id=receiver_id, given_at=now))
        add_progress(session, giver_id, QuestRequirement.RESPECT, 1, now.date())
        new_total = receiver.respect

    logger.info("%s gave respect to %s", giver_id, receiver_id)
    return {"receiver_id": str(receiver_id), "respect": new_total}


def transfer_respect(
    engine: Engine,
    sender_id: int,
    receiver_id: int,
    amount: int,
    *,
    today: date | None = None,
) -> dict:
    """Move *amount* respect from sender to a friend, atomically."""
    _reject_self(sender_id, receiver_id, "Cannot transfer respect to yourself")
    if not RESPECT_TRANSFER_MIN <= amount <= RESPECT_TRANSFER_MAX:
        raise ValidationFailed(
            f"Amount must be between {RESPECT_TRANSFER_MIN} and {RESPECT_TRANSFER_MAX}",
            reason="invalid_amount",
        )
    on = today or calendar.today()
    day = calendar.day_key(on)

    with get_session(engine) as session:
        if not are_friends(session, sender_id, receiver_id):
            raise RuleViolation("Can only transfer respect to friends", reason="not_friends")

        sent_today = session.scalar(
            select(func.coalesce(func.sum(RespectTransfer.amount), 0)).where(
                RespectTransfer.sender_id == sender_id,
                RespectTransfer.transfer_date == day,
            )
        ) or 0
        if sent_today + amount > RESPECT_TRANSFER_DAILY_LIMIT:
            raise RuleViolation(
                "Daily respect transfer limit reached",
                reason="daily_limit",
                remaining=max(0, RESPECT_TRANSFER_DAILY_LIMIT - sent_today),
            )

        plan = LedgerPlan()
        plan.debit(sender_id, Currency.RESPECT, amount,
                   TransactionType.RESPECT_TRANSFER, f"Respect sent to {receiver_id}")
        plan.credit(receiver_id, Currency.RESPECT, amount,
                    TransactionType.RESPECT_TRANSFER, f"Respect from {sender_id}")
        commit_plan(session, plan)
        session.add(RespectTransfer(
            sender_id=sender_id, receiver_id=receiver_id, amount=amount, transfer_date=day,
        ))

    logger.info("%s transferred %d respect to %s", sender_id, amount, receiver_id)
    return {
        "amount": amount,
        "remaining_today": RESPECT_TRANSFER_DAILY_LIMIT - sent_today - amount,
    }

"""
twilight.services.trade_service — Peer-to-Peer Trades
======================================================

Lifecycle: ``pending`` → ``accepted`` | ``rejected``.  Both terminal
states are immutable.

Acceptance stages all four balance legs in one
:class:`~twilight.engine.ledger.LedgerPlan` and commits them with the
status flip and the two audit rows in a single transaction.  Both sides
are re-validated at accept time: the receiver must cover the request and
the sender must still cover the offer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased

from twilight.constants import TRADE_HISTORY_LIMIT, TRADEABLE_CURRENCIES, TransactionType
from twilight.database.engine import get_session
from twilight.database.models import Trade, TradeStatus, User
from twilight.engine.ledger import LedgerPlan
from twilight.errors import InsufficientBalance, NotFound, RuleViolation, ValidationFailed
from twilight.services.ledger_service import commit_plan, get_or_create_user
from twilight.services.social_service import are_friends

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _validate_leg(kind: str, currency: str, amount: int) -> None:
    if currency not in TRADEABLE_CURRENCIES:
        raise ValidationFailed(f"Invalid {kind} type '{currency}'", reason="invalid_currency")
    if amount <= 0:
        raise ValidationFailed(f"{kind.capitalize()} value must be positive", reason="invalid_amount")


def _trade_dict(trade: Trade, sender: User | None = None, receiver: User | None = None) -> dict:
    body = {
        "trade_id": trade.id,
        "sender_id": str(trade.sender_id),
        "receiver_id": str(trade.receiver_id),
        "offer_type": trade.offer_type,
        "offer_value": trade.offer_value,
        "request_type": trade.request_type,
        "request_value": trade.request_value,
        "status": trade.status,
        "created_at": trade.created_at.isoformat() if trade.created_at else None,
    }
    if sender is not None:
        body["sender_name"] = sender.username
    if receiver is not None:
        body["receiver_name"] = receiver.username
    return body


def _pending_for_receiver(session: Session, trade_id: int, user_id: int) -> Trade:
    trade = session.scalar(
        select(Trade)
        .where(
            Trade.id == trade_id,
            Trade.receiver_id == user_id,
            Trade.status == TradeStatus.PENDING.value,
        )
        .with_for_update()
    )
    if trade is None:
        raise NotFound("Trade not found or already processed", reason="trade_not_found")
    return trade


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def create_trade(
    engine: Engine,
    sender_id: int,
    receiver_id: int,
    offer_type: str,
    offer_value: int,
    request_type: str,
    request_value: int,
) -> dict:
    if sender_id == receiver_id:
        raise ValidationFailed("Cannot trade with yourself", reason="self_reference")
    _validate_leg("offer", offer_type, offer_value)
    _validate_leg("request", request_type, request_value)

    with get_session(engine) as session:
        if not are_friends(session, sender_id, receiver_id):
            raise RuleViolation("Can only trade with friends", reason="not_friends")

        sender = get_or_create_user(session, sender_id)
        if getattr(sender, offer_type) < offer_value:
            raise InsufficientBalance(sender_id, offer_type)

        trade = Trade(
            sender_id=sender_id,
            receiver_id=receiver_id,
            offer_type=offer_type,
            offer_value=offer_value,
            request_type=request_type,
            request_value=request_value,
            status=TradeStatus.PENDING.value,
        )
        session.add(trade)
        session.flush()
        trade_id = trade.id

    logger.info(
        "Trade %d created: %s offers %d %s to %s for %d %s",
        trade_id, sender_id, offer_value, offer_type, receiver_id, request_value, request_type,
    )
    return {"trade_id": trade_id}


# ---------------------------------------------------------------------------
# Accept / reject
# ---------------------------------------------------------------------------
def accept_trade(engine: Engine, trade_id: int, user_id: int) -> dict:
    """Settle a pending trade.  All four legs land or none do."""
    with get_session(engine) as session:
        trade = _pending_for_receiver(session, trade_id, user_id)
        summary = (
            f"Trade #{trade.id}: {trade.offer_value} {trade.offer_type} "
            f"for {trade.request_value} {trade.request_type}"
        )

        plan = LedgerPlan()
        # Receiver legs first so a short receiver is reported before the sender.
        plan.debit(trade.receiver_id, trade.request_type, trade.request_value)
        plan.credit(trade.receiver_id, trade.offer_type, trade.offer_value)
        plan.debit(trade.sender_id, trade.offer_type, trade.offer_value)
        plan.credit(trade.sender_id, trade.request_type, trade.request_value)
        plan.record(trade.sender_id, TransactionType.TRADE, trade.offer_type,
                    -trade.offer_value, summary)
        plan.record(trade.receiver_id, TransactionType.TRADE, trade.request_type,
                    -trade.request_value, summary)
        commit_plan(session, plan)

        trade.status = TradeStatus.ACCEPTED.value

    logger.info("Trade %d accepted by %s", trade_id, user_id)
    return {"trade_id": trade_id, "status": TradeStatus.ACCEPTED.value}


def reject_trade(engine: Engine, trade_id: int, user_id: int) -> dict:
    with get_session(engine) as session:
        trade = _pending_for_receiver(session, trade_id, user_id)
        trade.status = TradeStatus.REJECTED.value

    logger.info("Trade %d rejected by %s", trade_id, user_id)
    return {"trade_id": trade_id, "status": TradeStatus.REJECTED.value}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_user_trades(engine: Engine, user_id: int, limit: int = TRADE_HISTORY_LIMIT) -> list[dict]:
    """Most recent trades the user sent or received."""
    sender = aliased(User)
    receiver = aliased(User)
    with Session(engine) as session:
        rows = session.execute(
            select(Trade, sender, receiver)
            .join(sender, sender.id == Trade.sender_id)
            .join(receiver, receiver.id == Trade.receiver_id)
            .where(or_(Trade.sender_id == user_id, Trade.receiver_id == user_id))
            .order_by(Trade.created_at.desc(), Trade.id.desc())
            .limit(limit)
        ).all()
        return [_trade_dict(t, s, r) for t, s, r in rows]

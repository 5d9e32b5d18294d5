"""
twilight.services.ledger_service — Users, Balances & Transactions
==================================================================

Shared service module callable by both bot and API.  Owns user creation
and the one place balances change: :func:`commit_plan` applies a
validated :class:`~twilight.engine.ledger.LedgerPlan` and appends its
``transactions`` rows inside the caller's session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from twilight.constants import LEADERBOARD_CURRENCIES
from twilight.database.models import Transaction, User
from twilight.engine.ledger import LedgerPlan
from twilight.errors import ValidationFailed

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def get_or_create_user(
    session: Session,
    user_id: int,
    username: str | None = None,
    *,
    lock: bool = False,
) -> User:
    """Fetch or insert a User row.

    With ``lock=True`` the row is read ``FOR UPDATE`` on databases that
    support it, so concurrent balance plans for the same user serialise.
    """
    user = session.get(User, user_id, with_for_update=True if lock else None)
    if user is None:
        user = User(
            id=user_id,
            username=username or str(user_id),
            gems=0,
            respect=0,
            total_voice_minutes=0,
            total_messages=0,
            streak_count=0,
        )
        session.add(user)
        session.flush()
    elif username:
        user.username = username
    return user


def commit_plan(session: Session, plan: LedgerPlan) -> dict[int, User]:
    """Validate *plan* against current balances and apply every leg.

    Raises :class:`~twilight.errors.InsufficientBalance` before anything
    is written when any balance would go negative.  Committing is left to
    the caller's session block, so the plan lands together with whatever
    state change it pays for.
    """
    users = {uid: get_or_create_user(session, uid, lock=True) for uid in plan.user_ids()}
    balances = {
        (uid, currency): getattr(users[uid], currency)
        for uid, currency in plan.deltas()
    }
    plan.validate(balances)

    for leg in plan.legs:
        user = users[leg.user_id]
        setattr(user, leg.currency, getattr(user, leg.currency) + leg.amount)

    for rec in plan.records:
        session.add(Transaction(
            user_id=rec.user_id,
            transaction_type=rec.transaction_type,
            currency=rec.currency,
            amount=rec.amount,
            description=rec.description,
        ))
    session.flush()

    if plan.legs:
        logger.debug("Ledger plan applied: %d legs, %d records", len(plan.legs), len(plan.records))
    return users


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def user_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "gems": user.gems,
        "respect": user.respect,
        "total_voice_minutes": user.total_voice_minutes,
        "total_messages": user.total_messages,
        "streak_count": user.streak_count,
    }


def get_transactions(engine: Engine, user_id: int, limit: int = 50) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        ).all()
        return [
            {
                "id": r.id,
                "type": r.transaction_type,
                "currency": r.currency,
                "amount": r.amount,
                "description": r.description,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ]


def get_leaderboard(
    engine: Engine,
    currency: str,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    """Paginated ranking of users by one of :data:`LEADERBOARD_CURRENCIES`."""
    if currency not in LEADERBOARD_CURRENCIES:
        raise ValidationFailed(
            f"Unknown leaderboard '{currency}'",
            allowed=list(LEADERBOARD_CURRENCIES),
        )
    order_col = getattr(User, currency)
    offset = (page - 1) * page_size

    with Session(engine) as session:
        total = session.scalar(select(func.count()).select_from(User)) or 0
        rows = session.scalars(
            select(User).order_by(order_col.desc(), User.id).offset(offset).limit(page_size)
        ).all()
        return {
            "total": total,
            "page": page,
            "page_size": page_size,
            "users": [
                {**user_dict(u), "rank": offset + i + 1}
                for i, u in enumerate(rows)
            ],
        }

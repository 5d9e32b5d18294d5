"""
twilight.services.daily_reward_service — Daily Reward Claims
=============================================================

Persistence around :mod:`twilight.engine.daily_rewards`.  A claim writes
the ``reward_claims`` journal row, advances the ``daily_rewards`` record,
credits gems and respect and logs a ``daily_reward`` transaction, all in
one session.  The ``(user_id, claim_date)`` unique constraint backs the
once-per-day rule if two claims race.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from twilight.constants import CLAIM_HISTORY_LIMIT, Currency, TransactionType
from twilight.database.engine import get_session
from twilight.database.models import DailyRewardRecord, RewardClaim
from twilight.engine import calendar
from twilight.engine.daily_rewards import (
    evaluate_claim,
    milestone_after,
    milestone_at_or_after,
    reward_for_day,
    streak_alive,
    upcoming_rewards,
)
from twilight.engine.ledger import LedgerPlan
from twilight.errors import RuleViolation
from twilight.services.ledger_service import commit_plan, get_or_create_user

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _load(session: Session, user_id: int) -> tuple[str | None, int, int]:
    row = session.get(DailyRewardRecord, user_id)
    if row is None:
        return None, 0, 0
    return row.last_claim_date, row.current_streak, row.total_claims


def can_claim(engine: Engine, user_id: int, *, today: date | None = None) -> dict:
    on = today or calendar.today()
    with Session(engine) as session:
        last, streak, _ = _load(session, user_id)
    return evaluate_claim(last, streak, on).as_dict()


def claim_daily_reward(
    engine: Engine,
    user_id: int,
    *,
    username: str | None = None,
    today: date | None = None,
) -> dict:
    """Claim today's reward.

    Raises
    ------
    RuleViolation
        ``already_claimed_today`` on a second claim for the same date.
    """
    on = today or calendar.today()
    today_key = calendar.day_key(on)

    try:
        with get_session(engine) as session:
            get_or_create_user(session, user_id, username)
            row = session.get(DailyRewardRecord, user_id, with_for_update=True)
            if row is None:
                row = DailyRewardRecord(
                    user_id=user_id, current_streak=0, last_claim_date=None,
                    total_claims=0, next_milestone=milestone_at_or_after(1),
                )
                session.add(row)

            decision = evaluate_claim(row.last_claim_date, row.current_streak, on)
            if not decision.can_claim:
                raise RuleViolation(
                    "Already claimed today",
                    reason=decision.reason,
                    next_claim_date=decision.next_claim_date,
                )

            day = decision.streak_day
            reward = reward_for_day(day)

            description = f"Daily reward: {reward.description}"
            plan = LedgerPlan()
            plan.credit(user_id, Currency.GEMS, reward.gems,
                        TransactionType.DAILY_REWARD, description)
            plan.credit(user_id, Currency.RESPECT, reward.respect,
                        TransactionType.DAILY_REWARD, description)
            commit_plan(session, plan)

            row.current_streak = day
            row.last_claim_date = today_key
            row.total_claims += 1
            row.next_milestone = milestone_at_or_after(day)

            session.add(RewardClaim(
                user_id=user_id,
                claim_date=today_key,
                day_number=day,
                reward_type="daily",
                gems=reward.gems,
                respect=reward.respect,
            ))
            session.flush()
    except IntegrityError:
        raise RuleViolation(
            "Already claimed today", reason="already_claimed_today",
        ) from None

    logger.info("User %s claimed daily reward day %d (+%d gems)", user_id, day, reward.gems)
    return {
        "reward": reward.as_dict(),
        "streak_day": day,
        "next_milestone": milestone_after(day),
        "streak_broken": decision.streak_broken,
    }


def get_daily_reward_status(engine: Engine, user_id: int, *, today: date | None = None) -> dict:
    on = today or calendar.today()
    with Session(engine) as session:
        last, streak, total = _load(session, user_id)

    decision = evaluate_claim(last, streak, on)
    alive = streak_alive(last, on)
    effective_streak = streak if alive else 0
    # Already claimed today: report the reward that was just collected.
    next_day = decision.streak_day if decision.can_claim else streak
    return {
        "current_streak": effective_streak,
        "can_claim": decision.can_claim,
        "next_reward": reward_for_day(next_day).as_dict(),
        "next_reward_day": next_day,
        "total_claims": total,
        "next_milestone": milestone_after(effective_streak),
        "last_claim_date": last,
        "streak_active": alive,
    }


def get_upcoming_rewards(engine: Engine, user_id: int, *, today: date | None = None) -> list[dict]:
    """The next seven rewards the user would receive by claiming daily."""
    on = today or calendar.today()
    with Session(engine) as session:
        last, streak, _ = _load(session, user_id)
    return upcoming_rewards(streak if streak_alive(last, on) else 0)


def get_claim_history(engine: Engine, user_id: int, limit: int = CLAIM_HISTORY_LIMIT) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(RewardClaim)
            .where(RewardClaim.user_id == user_id)
            .order_by(RewardClaim.claim_date.desc())
            .limit(limit)
        ).all()
        return [
            {
                "claim_date": r.claim_date,
                "day_number": r.day_number,
                "reward_type": r.reward_type,
                "gems": r.gems,
                "respect": r.respect,
            }
            for r in rows
        ]

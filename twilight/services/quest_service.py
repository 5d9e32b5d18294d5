"""
twilight.services.quest_service — Quest Generation, Progress & Claims
======================================================================

* Generation is idempotent per period: a period that already has quests
  is left alone, and the ``(start_date, is_weekly, name)`` unique
  constraint rejects a racing duplicate insert.
* Progress only moves forward and completion is one-way.
* A claim requires ``completed and not claimed`` and pays through a
  ledger plan in the same transaction that flips ``claimed``.
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from twilight.constants import Currency, TransactionType
from twilight.database.engine import get_session
from twilight.database.models import Quest, UserQuest
from twilight.engine import calendar
from twilight.engine.ledger import LedgerPlan
from twilight.engine.quests import (
    DAILY_PICK,
    DAILY_TEMPLATES,
    WEEKLY_PICK,
    WEEKLY_TEMPLATES,
    QuestTemplate,
    QuestWindow,
    apply_progress,
    daily_window,
    pick_templates,
    weekly_window,
)
from twilight.errors import RuleViolation
from twilight.services.ledger_service import commit_plan, get_or_create_user

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------
def _generate(
    engine: Engine,
    window: QuestWindow,
    pool: tuple[QuestTemplate, ...],
    count: int,
    rng: random.Random | None,
) -> int:
    try:
        with get_session(engine) as session:
            existing = session.scalar(
                select(Quest.id)
                .where(Quest.start_date == window.start_date, Quest.is_weekly == window.is_weekly)
                .limit(1)
            )
            if existing is not None:
                return 0

            picked = pick_templates(pool, count, rng)
            for tpl in picked:
                session.add(Quest(
                    quest_type=window.quest_type,
                    name=tpl.name,
                    description=tpl.description,
                    requirement_type=tpl.requirement_type.value,
                    requirement_value=tpl.requirement_value,
                    reward_gems=tpl.reward_gems,
                    reward_respect=tpl.reward_respect,
                    start_date=window.start_date,
                    end_date=window.end_date,
                    is_weekly=window.is_weekly,
                ))
    except IntegrityError:
        logger.info(
            "%s quests for %s were generated concurrently; keeping existing set",
            window.quest_type, window.start_date,
        )
        return 0

    logger.info(
        "Generated %d %s quests for %s: %s",
        len(picked), window.quest_type, window.start_date,
        ", ".join(t.name for t in picked),
    )
    return len(picked)


def generate_daily_quests(
    engine: Engine, *, today: date | None = None, rng: random.Random | None = None,
) -> int:
    """Create today's daily quests unless they already exist.  Returns rows created."""
    on = today or calendar.today()
    return _generate(engine, daily_window(on), DAILY_TEMPLATES, DAILY_PICK, rng)


def generate_weekly_quests(
    engine: Engine, *, today: date | None = None, rng: random.Random | None = None,
) -> int:
    """Create this ISO week's quests unless they already exist."""
    on = today or calendar.today()
    return _generate(engine, weekly_window(on), WEEKLY_TEMPLATES, WEEKLY_PICK, rng)


def ensure_quests(engine: Engine, *, today: date | None = None) -> dict:
    """Run both generators; safe to call on every poll."""
    return {
        "daily": generate_daily_quests(engine, today=today),
        "weekly": generate_weekly_quests(engine, today=today),
    }


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------
def _active_quests(session: Session, on: date, requirement_type: str | None = None) -> list[Quest]:
    key = calendar.day_key(on)
    query = select(Quest).where(Quest.start_date <= key, Quest.end_date > key)
    if requirement_type is not None:
        query = query.where(Quest.requirement_type == requirement_type)
    return list(session.scalars(query.order_by(Quest.is_weekly, Quest.id)).all())


def add_progress(
    session: Session,
    user_id: int,
    requirement_type: str,
    amount: int,
    on: date,
) -> list[int]:
    """Advance every active, incomplete quest of *requirement_type*.

    Runs inside the caller's session.  Returns the ids of quests that
    became complete on this call.
    """
    if amount <= 0:
        return []

    completed_now: list[int] = []
    for quest in _active_quests(session, on, requirement_type):
        uq = session.scalar(
            select(UserQuest).where(
                UserQuest.user_id == user_id, UserQuest.quest_id == quest.id,
            )
        )
        if uq is None:
            uq = UserQuest(user_id=user_id, quest_id=quest.id, progress=0,
                           completed=False, claimed=False)
            session.add(uq)
        elif uq.completed:
            continue

        uq.progress, reached = apply_progress(uq.progress, amount, quest.requirement_value)
        if reached:
            uq.completed = True
            uq.completed_at = datetime.now(UTC)
            completed_now.append(quest.id)
            logger.info("User %s completed quest %r", user_id, quest.name)

    session.flush()
    return completed_now


def update_progress(
    engine: Engine,
    user_id: int,
    requirement_type: str,
    amount: int = 1,
    *,
    today: date | None = None,
) -> list[int]:
    """Standalone wrapper around :func:`add_progress` with its own transaction."""
    on = today or calendar.today()
    with get_session(engine) as session:
        get_or_create_user(session, user_id)
        return add_progress(session, user_id, requirement_type, amount, on)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _quest_dict(quest: Quest, uq: UserQuest | None) -> dict:
    return {
        "quest_id": quest.id,
        "quest_type": quest.quest_type,
        "name": quest.name,
        "description": quest.description,
        "requirement_type": quest.requirement_type,
        "requirement_value": quest.requirement_value,
        "reward_gems": quest.reward_gems,
        "reward_respect": quest.reward_respect,
        "start_date": quest.start_date,
        "end_date": quest.end_date,
        "is_weekly": quest.is_weekly,
        "progress": uq.progress if uq else 0,
        "completed": uq.completed if uq else False,
        "claimed": uq.claimed if uq else False,
    }


def get_available_quests(engine: Engine, user_id: int, *, today: date | None = None) -> list[dict]:
    """Quests active today joined with the user's progress."""
    on = today or calendar.today()
    with Session(engine) as session:
        quests = _active_quests(session, on)
        if not quests:
            return []
        progress = {
            uq.quest_id: uq
            for uq in session.scalars(
                select(UserQuest).where(
                    UserQuest.user_id == user_id,
                    UserQuest.quest_id.in_([q.id for q in quests]),
                )
            ).all()
        }
        return [_quest_dict(q, progress.get(q.id)) for q in quests]


# ---------------------------------------------------------------------------
# Claim
# ---------------------------------------------------------------------------
def claim_reward(engine: Engine, user_id: int, quest_id: int) -> dict:
    """Pay a completed quest exactly once.

    Raises
    ------
    RuleViolation
        ``quest_not_claimable`` when the quest is not completed or was
        already claimed.
    """
    with get_session(engine) as session:
        uq = session.scalar(
            select(UserQuest)
            .where(UserQuest.user_id == user_id, UserQuest.quest_id == quest_id)
            .with_for_update()
        )
        if uq is None or not uq.completed or uq.claimed:
            raise RuleViolation(
                "Quest not completed or already claimed", reason="quest_not_claimable",
            )

        quest = uq.quest
        description = f"Quest: {quest.name}"
        plan = LedgerPlan()
        plan.credit(user_id, Currency.GEMS, quest.reward_gems,
                    TransactionType.QUEST_REWARD, description)
        plan.credit(user_id, Currency.RESPECT, quest.reward_respect,
                    TransactionType.QUEST_REWARD, description)
        commit_plan(session, plan)

        uq.claimed = True
        uq.claimed_at = datetime.now(UTC)
        rewards = {"gems": quest.reward_gems, "respect": quest.reward_respect}

    logger.info("User %s claimed quest %d (%s)", user_id, quest_id, rewards)
    return {"quest_id": quest_id, "rewards": rewards}

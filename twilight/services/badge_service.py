"""
twilight.services.badge_service — Badge & Achievement Awarding
===============================================================

Builds a :class:`~twilight.engine.achievements.StatsSnapshot` from the
database, runs it through the pure evaluators and persists new unlocks.
Achievement rewards are paid through a ledger plan in the same session
that inserts the unlock rows.

``top_10`` is the only manual badge; :func:`refresh_top_badges` grants
it to the current top members and revokes it from everyone else.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from sqlalchemy import delete, extract, func, or_, select
from sqlalchemy.orm import Session

from twilight.constants import TOP_BADGE_SIZE, Currency, TransactionType
from twilight.database.engine import get_session
from twilight.database.models import (
    ActivityStreak,
    Friendship,
    RespectGiven,
    RespectTransfer,
    Trade,
    TradeStatus,
    User,
    UserAchievement,
    UserBadge,
    UserQuest,
    VoiceSession,
)
from twilight.engine.achievements import (
    ACHIEVEMENTS,
    BADGES,
    BADGES_BY_ID,
    TOP_BADGE_ID,
    StatsSnapshot,
    activity_score,
    check_unlocks,
)
from twilight.engine.ledger import LedgerPlan
from twilight.services.ledger_service import commit_plan, get_or_create_user

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

LATE_NIGHT_END_HOUR = 6


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
def _count(session: Session, query) -> int:
    return session.scalar(query) or 0


def build_stats(session: Session, user: User) -> StatsSnapshot:
    """Gather every counter the unlock catalogues reference."""
    uid = user.id
    streak = session.get(ActivityStreak, uid)

    trades = _count(session, select(func.count(Trade.id)).where(
        or_(Trade.sender_id == uid, Trade.receiver_id == uid),
        Trade.status == TradeStatus.ACCEPTED.value,
    ))
    quests = _count(session, select(func.count(UserQuest.id)).where(
        UserQuest.user_id == uid, UserQuest.completed.is_(True),
    ))
    gifts = _count(session, select(func.count(RespectGiven.id)).where(
        RespectGiven.giver_id == uid,
    ))
    transferred = _count(session, select(func.coalesce(func.sum(RespectTransfer.amount), 0)).where(
        RespectTransfer.sender_id == uid,
    ))
    friends = _count(session, select(func.count()).select_from(Friendship).where(
        Friendship.user_id == uid,
    ))
    late_night = _count(session, select(func.count(VoiceSession.id)).where(
        VoiceSession.user_id == uid,
        extract("hour", VoiceSession.joined_at) < LATE_NIGHT_END_HOUR,
    ))
    unlocked = _count(session, select(func.count()).select_from(UserAchievement).where(
        UserAchievement.user_id == uid,
    ))

    return StatsSnapshot(
        voice_minutes=user.total_voice_minutes,
        messages=user.total_messages,
        respect=user.respect,
        respect_given=gifts + transferred,
        friends=friends,
        streak=streak.current_streak if streak else 0,
        longest_streak=streak.longest_streak if streak else 0,
        trades_completed=trades,
        quests_completed=quests,
        late_night_sessions=late_night,
        achievements_unlocked=unlocked,
    )


def _earned_badges(session: Session, user_id: int) -> set[str]:
    return set(session.scalars(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    ).all())


def _earned_achievements(session: Session, user_id: int) -> set[str]:
    return set(session.scalars(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    ).all())


# ---------------------------------------------------------------------------
# Unlocks
# ---------------------------------------------------------------------------
def award_unlocks(session: Session, user_id: int) -> dict:
    """Grant every newly satisfied badge and achievement inside *session*.

    Achievements are evaluated twice so an unlock that completes the set
    can trigger ``completionist`` in the same call.
    """
    user = get_or_create_user(session, user_id)

    stats = build_stats(session, user)
    new_badges = check_unlocks(BADGES, stats, _earned_badges(session, user_id))
    for badge in new_badges:
        session.add(UserBadge(user_id=user_id, badge_id=badge.id))

    earned = _earned_achievements(session, user_id)
    new_achievements = check_unlocks(ACHIEVEMENTS, stats, earned)
    if new_achievements:
        earned |= {a.id for a in new_achievements}
        bumped = replace(stats, achievements_unlocked=len(earned))
        new_achievements += check_unlocks(ACHIEVEMENTS, bumped, earned)

    plan = LedgerPlan()
    for ach in new_achievements:
        session.add(UserAchievement(user_id=user_id, achievement_id=ach.id))
        plan.credit(user_id, Currency.GEMS, ach.reward_gems,
                    TransactionType.ACHIEVEMENT_REWARD, f"Achievement: {ach.name}")
    commit_plan(session, plan)

    for badge in new_badges:
        logger.info("User %s earned badge %s", user_id, badge.id)
    for ach in new_achievements:
        logger.info("User %s unlocked achievement %s (+%d gems)", user_id, ach.id, ach.reward_gems)

    return {
        "badges": [b.as_dict() for b in new_badges],
        "achievements": [a.as_dict() for a in new_achievements],
    }


def check_user_unlocks(engine: Engine, user_id: int) -> dict:
    with get_session(engine) as session:
        return award_unlocks(session, user_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_user_achievements(engine: Engine, user_id: int) -> dict:
    """Unlocked achievements plus progress toward the locked ones."""
    with Session(engine) as session:
        user = session.get(User, user_id)
        stats = build_stats(session, user) if user is not None else StatsSnapshot()
        unlocked = {
            row.achievement_id: row.unlocked_at
            for row in session.scalars(
                select(UserAchievement).where(UserAchievement.user_id == user_id)
            ).all()
        }

    items = []
    for ach in ACHIEVEMENTS:
        is_unlocked = ach.id in unlocked
        if ach.is_secret and not is_unlocked:
            continue
        body = ach.as_dict()
        if is_unlocked:
            body["description"] = ach.description
        body["unlocked"] = is_unlocked
        body["unlocked_at"] = unlocked[ach.id].isoformat() if is_unlocked and unlocked[ach.id] else None
        req = ach.requirement()
        if req is not None:
            field_name, target = req
            body["progress"] = min(stats.get(field_name), target)
            body["target"] = target
        items.append(body)

    return {
        "achievements": items,
        "unlocked_count": len(unlocked),
        "total": len(ACHIEVEMENTS),
    }


def get_user_badges(engine: Engine, user_id: int) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(UserBadge)
            .where(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at, UserBadge.badge_id)
        ).all()
        result = []
        for row in rows:
            badge = BADGES_BY_ID.get(row.badge_id)
            if badge is None:
                logger.warning("User %s holds unknown badge %r", user_id, row.badge_id)
                continue
            result.append({
                **badge.as_dict(),
                "earned_at": row.earned_at.isoformat() if row.earned_at else None,
            })
        return result


# ---------------------------------------------------------------------------
# Top-10 ranking badge
# ---------------------------------------------------------------------------
def refresh_top_badges(engine: Engine, size: int = TOP_BADGE_SIZE) -> dict:
    """Sync the ``top_10`` badge with the current activity ranking."""
    with get_session(engine) as session:
        users = session.scalars(select(User)).all()
        ranked = sorted(
            users,
            key=lambda u: (-activity_score(u.total_voice_minutes, u.total_messages, u.respect), u.id),
        )
        top_ids = {u.id for u in ranked[:size]}
        holders = set(session.scalars(
            select(UserBadge.user_id).where(UserBadge.badge_id == TOP_BADGE_ID)
        ).all())

        granted = top_ids - holders
        revoked = holders - top_ids
        for uid in granted:
            session.add(UserBadge(user_id=uid, badge_id=TOP_BADGE_ID))
        if revoked:
            session.execute(
                delete(UserBadge).where(
                    UserBadge.badge_id == TOP_BADGE_ID, UserBadge.user_id.in_(revoked),
                )
            )

    if granted or revoked:
        logger.info("Top badge refresh: +%d / -%d", len(granted), len(revoked))
    return {"granted": sorted(granted), "revoked": sorted(revoked)}

"""
twilight.api.routes.daily_rewards — Daily reward endpoints
===========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from twilight.api.deps import get_engine
from twilight.api.schemas import DailyClaimBody, ok
from twilight.constants import CLAIM_HISTORY_LIMIT
from twilight.services import daily_reward_service

router = APIRouter(prefix="/daily-rewards", tags=["daily-rewards"])


@router.post("/claim")
def claim(body: DailyClaimBody, engine=Depends(get_engine)):
    return ok(daily_reward_service.claim_daily_reward(
        engine, body.user_id, username=body.username,
    ))


@router.get("/{user_id}")
def status(user_id: int, engine=Depends(get_engine)):
    return ok(daily_reward_service.get_daily_reward_status(engine, user_id))


@router.get("/{user_id}/upcoming")
def upcoming(user_id: int, engine=Depends(get_engine)):
    return ok(daily_reward_service.get_upcoming_rewards(engine, user_id))


@router.get("/{user_id}/history")
def history(
    user_id: int,
    limit: int = Query(CLAIM_HISTORY_LIMIT, ge=1, le=CLAIM_HISTORY_LIMIT),
    engine=Depends(get_engine),
):
    return ok(daily_reward_service.get_claim_history(engine, user_id, limit))

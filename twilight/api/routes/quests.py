"""
twilight.api.routes.quests — Quest endpoints
=============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from twilight.api.deps import get_engine
from twilight.api.schemas import QuestClaimBody, ok
from twilight.services import quest_service

router = APIRouter(prefix="/quests", tags=["quests"])


@router.post("/claim")
def claim(body: QuestClaimBody, engine=Depends(get_engine)):
    return ok(quest_service.claim_reward(engine, body.user_id, body.quest_id))


@router.get("/{user_id}")
def list_quests(user_id: int, engine=Depends(get_engine)):
    """Today's active daily and weekly quests with the user's progress."""
    return ok(quest_service.get_available_quests(engine, user_id))

"""
twilight.api.routes.achievements — Achievement & badge endpoints
=================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from twilight.api.deps import get_engine
from twilight.api.schemas import UserBody, ok
from twilight.services import badge_service

router = APIRouter(tags=["achievements"])


@router.post("/achievements/check")
def check(body: UserBody, engine=Depends(get_engine)):
    """Evaluate and grant any newly earned badges and achievements."""
    return ok(badge_service.check_user_unlocks(engine, body.user_id))


@router.get("/achievements/{user_id}")
def list_achievements(user_id: int, engine=Depends(get_engine)):
    return ok(badge_service.get_user_achievements(engine, user_id))


@router.get("/badges/{user_id}")
def list_badges(user_id: int, engine=Depends(get_engine)):
    return ok(badge_service.get_user_badges(engine, user_id))

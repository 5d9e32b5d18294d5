"""
twilight.api.routes.streak — Activity streak endpoints
=======================================================

``/streak/settings`` and ``/streak/leaderboard`` are declared before
``/streak/{user_id}`` so the literal paths win.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from twilight.api.deps import AdminClaims, get_current_admin, get_engine, get_settings_cache
from twilight.api.schemas import TrackActivityBody, ok
from twilight.constants import STREAK_LEADERBOARD_LIMIT
from twilight.services import settings_service, streak_service

router = APIRouter(prefix="/streak", tags=["streak"])

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@router.get("/settings")
def get_settings(cache=Depends(get_settings_cache)):
    return ok(settings_service.get_streak_settings(cache))


@router.put("/settings")
def update_settings(
    body: dict[str, Any] = Body(...),
    admin: AdminClaims = Depends(get_current_admin),
    engine=Depends(get_engine),
    cache=Depends(get_settings_cache),
):
    """Partial update; unknown keys or negative values are rejected with 400."""
    updated = settings_service.update_streak_settings(
        engine, cache, body, actor_id=admin.actor_id,
    )
    return ok(updated)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(STREAK_LEADERBOARD_LIMIT, ge=1, le=STREAK_LEADERBOARD_LIMIT),
    engine=Depends(get_engine),
):
    return ok(streak_service.get_streak_leaderboard(engine, limit))


# ---------------------------------------------------------------------------
# Per-user
# ---------------------------------------------------------------------------
@router.get("/{user_id}")
def get_streak(user_id: int, engine=Depends(get_engine), cache=Depends(get_settings_cache)):
    return ok(streak_service.get_streak_status(engine, cache, user_id))


@router.post("/track")
def track(body: TrackActivityBody, engine=Depends(get_engine), cache=Depends(get_settings_cache)):
    result = streak_service.track_activity(
        engine, cache, body.user_id, body.voice_minutes, body.messages,
    )
    if "error" in result:
        return JSONResponse(
            status_code=result["status_code"],
            content={"success": False, "error": result["error"], "reason": result["reason"]},
        )
    return ok(result)

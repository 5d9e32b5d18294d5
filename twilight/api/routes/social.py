"""
twilight.api.routes.social — Friends & respect endpoints
=========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from twilight.api.deps import get_engine
from twilight.api.schemas import FriendBody, RespectBody, RespectTransferBody, ok
from twilight.services import social_service

router = APIRouter(tags=["social"])


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------
@router.post("/friends/add")
def add_friend(body: FriendBody, engine=Depends(get_engine)):
    return ok(social_service.add_friend(engine, body.user_id, body.friend_id))


@router.post("/friends/remove")
def remove_friend(body: FriendBody, engine=Depends(get_engine)):
    social_service.remove_friend(engine, body.user_id, body.friend_id)
    return ok()


@router.get("/friends/{user_id}")
def list_friends(user_id: int, engine=Depends(get_engine)):
    return ok(social_service.list_friends(engine, user_id))


# ---------------------------------------------------------------------------
# Respect
# ---------------------------------------------------------------------------
@router.post("/respect")
def give_respect(body: RespectBody, engine=Depends(get_engine)):
    return ok(social_service.give_respect(engine, body.giver_id, body.receiver_id))


@router.post("/respect/transfer")
def transfer_respect(body: RespectTransferBody, engine=Depends(get_engine)):
    return ok(social_service.transfer_respect(
        engine, body.sender_id, body.receiver_id, body.amount,
    ))

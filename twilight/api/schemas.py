"""
twilight.api.schemas — Request bodies & response envelope
==========================================================

Every route answers ``{"success": true, "data": ...}``; failures are
rendered by the exception handlers in :mod:`twilight.api.main` as
``{"success": false, "error": ..., "reason": ...}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from twilight.constants import RESPECT_TRANSFER_MAX, RESPECT_TRANSFER_MIN, Currency


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------
class UserBody(BaseModel):
    user_id: int


class TrackActivityBody(BaseModel):
    user_id: int
    voice_minutes: int = Field(0, ge=0)
    messages: int = Field(0, ge=0)


class DailyClaimBody(BaseModel):
    user_id: int
    username: str | None = None


class QuestClaimBody(BaseModel):
    user_id: int
    quest_id: int


class TradeCreateBody(BaseModel):
    sender_id: int
    receiver_id: int
    offer_type: Currency
    offer_value: int = Field(gt=0)
    request_type: Currency
    request_value: int = Field(gt=0)


class FriendBody(BaseModel):
    user_id: int
    friend_id: int


class RespectBody(BaseModel):
    giver_id: int
    receiver_id: int


class RespectTransferBody(BaseModel):
    sender_id: int
    receiver_id: int
    amount: int = Field(ge=RESPECT_TRANSFER_MIN, le=RESPECT_TRANSFER_MAX)

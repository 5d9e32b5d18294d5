"""
twilight.api.routes.trades — Trade endpoints
=============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from twilight.api.deps import get_engine
from twilight.api.schemas import TradeCreateBody, UserBody, ok
from twilight.constants import TRADE_HISTORY_LIMIT
from twilight.services import trade_service

router = APIRouter(prefix="/trades", tags=["trades"])


@router.post("/create")
def create(body: TradeCreateBody, engine=Depends(get_engine)):
    return ok(trade_service.create_trade(
        engine,
        body.sender_id,
        body.receiver_id,
        body.offer_type.value,
        body.offer_value,
        body.request_type.value,
        body.request_value,
    ))


@router.post("/{trade_id}/accept")
def accept(trade_id: int, body: UserBody, engine=Depends(get_engine)):
    return ok(trade_service.accept_trade(engine, trade_id, body.user_id))


@router.post("/{trade_id}/reject")
def reject(trade_id: int, body: UserBody, engine=Depends(get_engine)):
    return ok(trade_service.reject_trade(engine, trade_id, body.user_id))


@router.get("/{user_id}")
def list_trades(
    user_id: int,
    limit: int = Query(TRADE_HISTORY_LIMIT, ge=1, le=TRADE_HISTORY_LIMIT),
    engine=Depends(get_engine),
):
    return ok(trade_service.get_user_trades(engine, user_id, limit))

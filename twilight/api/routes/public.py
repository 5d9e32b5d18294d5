"""
twilight.api.routes.public — Read-only public endpoints
========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from twilight.api.deps import get_engine
from twilight.api.schemas import ok
from twilight.services import ledger_service

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# GET /leaderboard/{currency}
# ---------------------------------------------------------------------------
@router.get("/leaderboard/{currency}")
def leaderboard(
    currency: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    engine=Depends(get_engine),
):
    """Paginated ranking by gems, respect, voice minutes, messages or streak."""
    return ok(ledger_service.get_leaderboard(engine, currency, page, page_size))


# ---------------------------------------------------------------------------
# GET /users/{user_id}/transactions
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}/transactions")
def transactions(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    engine=Depends(get_engine),
):
    return ok(ledger_service.get_transactions(engine, user_id, limit))

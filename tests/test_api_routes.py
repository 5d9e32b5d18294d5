"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Integration tests for the public and admin API routes using the FastAPI
TestClient against an in-memory SQLite database.

These tests verify:
- Health endpoint availability
- The ``{success, data | error}`` response envelope
- Auth guards on the admin settings endpoint
- Claim and trade flows end to end
"""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from conftest import balance, make_admin_token, make_friends, make_quest, make_user

from twilight.api.deps import JWT_ALGORITHM, JWT_SECRET
from twilight.engine import calendar
from twilight.errors import ValidationFailed
from twilight.services import streak_service
from twilight.services.quest_service import update_progress


@pytest.fixture
def non_admin_token():
    return jwt.encode(
        {"sub": "67890", "username": "RegularUser", "is_admin": False},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards on PUT /api/streak/settings
# ===========================================================================
class TestAdminAuthGuards:
    def test_no_token_returns_401(self, client):
        resp = client.put("/api/streak/settings", json={"required_messages": 3})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Missing token"}

    def test_invalid_token_returns_401(self, client):
        resp = client.put(
            "/api/streak/settings", json={"required_messages": 3},
            headers=_auth("garbage.token.here"),
        )
        assert resp.status_code == 401

    def test_wrong_secret_returns_401(self, client):
        forged = jwt.encode({"sub": "1", "is_admin": True}, "x" * 64, algorithm=JWT_ALGORITHM)
        resp = client.put(
            "/api/streak/settings", json={"required_messages": 3}, headers=_auth(forged),
        )
        assert resp.status_code == 401

    def test_non_numeric_subject_returns_401(self, client):
        token = make_admin_token(sub="not-a-snowflake")
        resp = client.put(
            "/api/streak/settings", json={"required_messages": 3}, headers=_auth(token),
        )
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_non_admin_returns_403(self, client, non_admin_token):
        resp = client.put(
            "/api/streak/settings", json={"required_messages": 3},
            headers=_auth(non_admin_token),
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "Not admin"


# ===========================================================================
# Streak settings
# ===========================================================================
class TestStreakSettings:
    def test_get_is_public(self, client):
        resp = client.get("/api/streak/settings")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["required_voice_minutes"] == 5
        assert body["data"]["milestones"]["7"] == 50

    def test_admin_update(self, client, admin_token):
        resp = client.put(
            "/api/streak/settings", json={"required_messages": 3}, headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["required_messages"] == 3
        assert client.get("/api/streak/settings").json()["data"]["required_messages"] == 3

    def test_unknown_key_returns_400(self, client):
        resp = client.put(
            "/api/streak/settings", json={"bogus": 1},
            headers=_auth(make_admin_token(sub="1")),
        )
        assert resp.status_code == 400
        assert resp.json()["reason"] == "unknown_setting"


# ===========================================================================
# Streak tracking
# ===========================================================================
class TestStreakTrack:
    def test_track_qualifies(self, client, db_engine):
        resp = client.post(
            "/api/streak/track", json={"user_id": 1, "voice_minutes": 5, "messages": 5},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["qualified"] is True
        assert data["reward"] == 10
        assert balance(db_engine, 1) == (10, 0)

    def test_negative_delta_is_422(self, client):
        resp = client.post("/api/streak/track", json={"user_id": 1, "voice_minutes": -1})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["reason"] == "invalid_request"
        assert body["error"].startswith("voice_minutes")

    def test_rejection_keeps_its_status(self, client, monkeypatch):
        def _reject(*args, **kwargs):
            raise ValidationFailed("Activity deltas must be non-negative")

        monkeypatch.setattr(streak_service, "apply_streak_activity", _reject)
        resp = client.post("/api/streak/track", json={"user_id": 1, "messages": 1})
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Activity deltas must be non-negative",
            "reason": "invalid_request",
        }

    def test_internal_failure_is_500(self, client, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("down")

        monkeypatch.setattr(streak_service, "apply_streak_activity", _boom)
        resp = client.post("/api/streak/track", json={"user_id": 1, "messages": 1})
        assert resp.status_code == 500
        assert resp.json()["reason"] == "internal_error"

    def test_status_and_leaderboard(self, client):
        client.post("/api/streak/track", json={"user_id": 1, "voice_minutes": 1})
        assert client.get("/api/streak/1").json()["data"]["today_progress"]["voice_minutes"] == 1
        assert client.get("/api/streak/leaderboard").json() == {"success": True, "data": []}


# ===========================================================================
# Daily rewards
# ===========================================================================
class TestDailyRewards:
    def test_claim_then_duplicate(self, client):
        first = client.post("/api/daily-rewards/claim", json={"user_id": 1})
        assert first.status_code == 200
        assert first.json()["data"]["reward"]["gems"] == 10

        second = client.post("/api/daily-rewards/claim", json={"user_id": 1})
        assert second.status_code == 400
        body = second.json()
        assert body["success"] is False
        assert body["reason"] == "already_claimed_today"
        assert "next_claim_date" in body

    def test_reads(self, client):
        client.post("/api/daily-rewards/claim", json={"user_id": 1})
        assert client.get("/api/daily-rewards/1").json()["data"]["can_claim"] is False
        assert len(client.get("/api/daily-rewards/1/upcoming").json()["data"]) == 7
        assert len(client.get("/api/daily-rewards/1/history").json()["data"]) == 1


# ===========================================================================
# Quests
# ===========================================================================
class TestQuests:
    def test_claim_completed_quest(self, client, db_engine):
        today = calendar.today()
        quest_id = make_quest(
            db_engine, requirement_type="voice", requirement_value=5,
            start=calendar.day_key(today),
            end=calendar.day_key(today + timedelta(days=1)),
        )
        update_progress(db_engine, 1, "voice", 5)

        quests = client.get("/api/quests/1").json()["data"]
        assert [(q["quest_id"], q["completed"]) for q in quests] == [(quest_id, True)]

        resp = client.post("/api/quests/claim", json={"user_id": 1, "quest_id": quest_id})
        assert resp.json() == {
            "success": True,
            "data": {"quest_id": quest_id, "rewards": {"gems": 5, "respect": 2}},
        }
        again = client.post("/api/quests/claim", json={"user_id": 1, "quest_id": quest_id})
        assert again.status_code == 400
        assert again.json()["reason"] == "quest_not_claimable"


# ===========================================================================
# Trades & social
# ===========================================================================
class TestTrades:
    @pytest.fixture
    def pair(self, db_engine):
        make_user(db_engine, 1, gems=100)
        make_user(db_engine, 2, respect=5)
        make_friends(db_engine, 1, 2)

    def test_receiver_short_is_400(self, client, db_engine, pair):
        created = client.post("/api/trades/create", json={
            "sender_id": 1, "receiver_id": 2,
            "offer_type": "gems", "offer_value": 50,
            "request_type": "respect", "request_value": 10,
        })
        trade_id = created.json()["data"]["trade_id"]

        resp = client.post(f"/api/trades/{trade_id}/accept", json={"user_id": 2})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Insufficient respect"
        assert balance(db_engine, 1) == (100, 0)
        assert balance(db_engine, 2) == (0, 5)

    def test_invalid_currency_is_422(self, client, pair):
        resp = client.post("/api/trades/create", json={
            "sender_id": 1, "receiver_id": 2,
            "offer_type": "gold", "offer_value": 5,
            "request_type": "respect", "request_value": 1,
        })
        assert resp.status_code == 422

    def test_unknown_trade_is_404(self, client):
        resp = client.post("/api/trades/999/reject", json={"user_id": 2})
        assert resp.status_code == 404
        assert resp.json()["reason"] == "trade_not_found"

    def test_history(self, client, pair):
        client.post("/api/trades/create", json={
            "sender_id": 1, "receiver_id": 2,
            "offer_type": "gems", "offer_value": 5,
            "request_type": "respect", "request_value": 1,
        })
        rows = client.get("/api/trades/2").json()["data"]
        assert rows[0]["status"] == "pending"


class TestSocial:
    def test_friends_and_respect(self, client, db_engine):
        assert client.post("/api/friends/add", json={"user_id": 1, "friend_id": 2}).status_code == 200
        assert [f["id"] for f in client.get("/api/friends/1").json()["data"]] == ["2"]

        assert client.post("/api/respect", json={"giver_id": 1, "receiver_id": 2}).status_code == 200
        cooldown = client.post("/api/respect", json={"giver_id": 1, "receiver_id": 2})
        assert cooldown.json()["reason"] == "cooldown"

        resp = client.post("/api/respect/transfer", json={
            "sender_id": 2, "receiver_id": 1, "amount": 1,
        })
        assert resp.json()["data"]["remaining_today"] == 24
        assert balance(db_engine, 1) == (0, 1)

    def test_self_friend_is_400(self, client):
        resp = client.post("/api/friends/add", json={"user_id": 1, "friend_id": 1})
        assert resp.status_code == 400
        assert resp.json()["reason"] == "self_reference"

    def test_transfer_over_max_is_422(self, client):
        resp = client.post("/api/respect/transfer", json={
            "sender_id": 1, "receiver_id": 2, "amount": 26,
        })
        assert resp.status_code == 422


# ===========================================================================
# Achievements & public reads
# ===========================================================================
class TestPublicReads:
    def test_achievements_and_badges(self, client):
        resp = client.post("/api/achievements/check", json={"user_id": 1})
        assert resp.json()["data"] == {"badges": [], "achievements": []}
        data = client.get("/api/achievements/1").json()["data"]
        assert data["unlocked_count"] == 0
        assert client.get("/api/badges/1").json() == {"success": True, "data": []}

    def test_leaderboard(self, client, db_engine):
        make_user(db_engine, 1, gems=5)
        make_user(db_engine, 2, gems=9)
        data = client.get("/api/leaderboard/gems").json()["data"]
        assert [u["id"] for u in data["users"]] == ["2", "1"]
        assert client.get("/api/leaderboard/password").status_code == 400

    def test_transactions(self, client, db_engine):
        client.post("/api/daily-rewards/claim", json={"user_id": 1})
        rows = client.get("/api/users/1/transactions").json()["data"]
        assert {r["type"] for r in rows} == {"daily_reward"}

"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from datetime import date

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of twilight.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from twilight.database.engine import get_session  # noqa: E402
from twilight.database.models import Base, Friendship, Quest, User  # noqa: E402
from twilight.database.seed import seed_default_settings  # noqa: E402
from twilight.engine.cache import SettingsCache  # noqa: E402

# A fixed Wednesday so daily and weekly windows are predictable.
TODAY = date(2026, 3, 11)


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with every Twilight table and default settings.

    StaticPool keeps a single connection so worker threads (``run_db``,
    the TestClient threadpool) see the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_default_settings(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def settings_cache(db_engine: Engine) -> SettingsCache:
    cache = SettingsCache(db_engine)
    cache.load_all()
    return cache


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin") -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from twilight.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": True},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine: Engine, settings_cache: SettingsCache):
    """FastAPI TestClient wired to the in-memory engine and cache."""
    from fastapi.testclient import TestClient

    from twilight.api.deps import get_engine, get_settings_cache
    from twilight.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_settings_cache] = lambda: settings_cache
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------
def make_user(engine: Engine, user_id: int, *, gems: int = 0, respect: int = 0,
              username: str | None = None) -> None:
    with get_session(engine) as session:
        session.add(User(
            id=user_id,
            username=username or f"user{user_id}",
            gems=gems,
            respect=respect,
            total_voice_minutes=0,
            total_messages=0,
            streak_count=0,
        ))


def make_friends(engine: Engine, a: int, b: int) -> None:
    with get_session(engine) as session:
        session.add(Friendship(user_id=a, friend_id=b))
        session.add(Friendship(user_id=b, friend_id=a))


def make_quest(engine: Engine, *, requirement_type: str, requirement_value: int,
               name: str = "Test Quest", reward_gems: int = 5, reward_respect: int = 2,
               start: str = "2026-03-11", end: str = "2026-03-12",
               is_weekly: bool = False) -> int:
    with get_session(engine) as session:
        quest = Quest(
            quest_type="weekly" if is_weekly else "daily",
            name=name,
            description=name,
            requirement_type=requirement_type,
            requirement_value=requirement_value,
            reward_gems=reward_gems,
            reward_respect=reward_respect,
            start_date=start,
            end_date=end,
            is_weekly=is_weekly,
        )
        session.add(quest)
        session.flush()
        return quest.id


def balance(engine: Engine, user_id: int) -> tuple[int, int]:
    """``(gems, respect)`` for *user_id*."""
    with Session(engine) as session:
        user = session.get(User, user_id)
        return (user.gems, user.respect) if user else (0, 0)

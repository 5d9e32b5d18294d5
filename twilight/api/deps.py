"""
twilight.api.deps — FastAPI dependency injection
=================================================

Process-wide singletons (engine, settings cache) and the admin guard for
the settings write endpoint.  Tests swap the singletons through
``app.dependency_overrides``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from twilight.database.engine import create_db_engine
from twilight.engine.cache import SettingsCache

JWT_ALGORITHM = "HS256"

_MIN_SECRET_LENGTH = 32

# Placeholders that ship in examples and docs.
_WEAK_SECRETS = frozenset({
    "twilight-dev-secret-change-me",
    "change-me",
    "changeme",
    "secret",
    "dev",
})


# ---------------------------------------------------------------------------
# JWT secret (validated once, at import)
# ---------------------------------------------------------------------------
def _load_jwt_secret() -> str:
    """Read JWT_SECRET and refuse to continue with a missing or weak one.

    Raises
    ------
    RuntimeError
        When the variable is unset or blank, a known placeholder, or
        shorter than 32 characters.
    """
    secret = os.getenv("JWT_SECRET", "").strip()
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret.lower() in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is a known weak default ('{secret}'); set a unique value."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars, need {_MIN_SECRET_LENGTH})."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


# ---------------------------------------------------------------------------
# Singletons
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def _settings_cache() -> SettingsCache:
    cache = SettingsCache(get_engine())
    cache.load_all()
    return cache


def get_settings_cache() -> SettingsCache:
    """Process-wide settings cache, loaded on first use."""
    return _settings_cache()


# ---------------------------------------------------------------------------
# Admin guard
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AdminClaims:
    """The parts of an admin token the settings audit trail needs."""

    actor_id: int
    username: str | None = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status.HTTP_401_UNAUTHORIZED, detail, headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> AdminClaims:
    """Validate ``Authorization: Bearer <jwt>`` and require ``is_admin``.

    401 when the header is missing, the token does not verify, or ``sub``
    is not a Discord id; 403 for a valid non-admin token.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Missing token")
    try:
        payload = jwt.decode(token.strip(), JWT_SECRET, algorithms=[JWT_ALGORITHM])
        actor_id = int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid token") from None
    if payload.get("is_admin") is not True:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return AdminClaims(actor_id=actor_id, username=payload.get("username"))

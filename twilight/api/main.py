"""
twilight.api.main — FastAPI application entry point
====================================================

Run with::

    uvicorn twilight.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from twilight import __version__  # noqa: E402
from twilight.api.deps import get_engine, get_settings_cache  # noqa: E402
from twilight.api.routes.achievements import router as achievements_router  # noqa: E402
from twilight.api.routes.daily_rewards import router as daily_rewards_router  # noqa: E402
from twilight.api.routes.public import router as public_router  # noqa: E402
from twilight.api.routes.quests import router as quests_router  # noqa: E402
from twilight.api.routes.social import router as social_router  # noqa: E402
from twilight.api.routes.streak import router as streak_router  # noqa: E402
from twilight.api.routes.trades import router as trades_router  # noqa: E402
from twilight.database.engine import init_db  # noqa: E402
from twilight.errors import TwilightError  # noqa: E402
from twilight.services.quest_service import ensure_quests  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, seed settings, warm the cache and make sure today's
    quests exist."""
    engine = get_engine()
    init_db(engine)
    get_settings_cache().reload()
    ensure_quests(engine)
    logger.info("Twilight API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Twilight API shutting down")


app = FastAPI(
    title="Twilight Community API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
@app.exception_handler(TwilightError)
async def _twilight_error(request: Request, exc: TwilightError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": f"{field}: {message}" if field else message,
            "reason": "invalid_request",
        },
    )


@app.exception_handler(SQLAlchemyError)
async def _database_error(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "error": "Database error"})


# Mount routers
app.include_router(streak_router, prefix="/api")
app.include_router(daily_rewards_router, prefix="/api")
app.include_router(quests_router, prefix="/api")
app.include_router(trades_router, prefix="/api")
app.include_router(social_router, prefix="/api")
app.include_router(achievements_router, prefix="/api")
app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}

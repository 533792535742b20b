"""
magazine.api.main — FastAPI application entry point
====================================================

Run with::

    python -m magazine                       # init DB, seed, serve
    uvicorn magazine.api.main:app --reload   # dev server only
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from magazine import __version__  # noqa: E402
from magazine.api.auth import router as auth_router  # noqa: E402
from magazine.api.deps import get_engine  # noqa: E402
from magazine.api.rate_limit import configure_rate_limiter  # noqa: E402
from magazine.api.routes.admin import router as admin_router  # noqa: E402
from magazine.api.routes.announcements import router as announcements_router  # noqa: E402
from magazine.api.routes.feed import router as feed_router  # noqa: E402
from magazine.api.routes.gamification import router as gamification_router  # noqa: E402
from magazine.api.routes.invites import router as invites_router  # noqa: E402
from magazine.api.routes.notifications import router as notifications_router  # noqa: E402
from magazine.api.routes.posts import router as posts_router  # noqa: E402
from magazine.api.routes.social import router as social_router  # noqa: E402
from magazine.api.routes.users import router as users_router  # noqa: E402
from magazine.config import load_config  # noqa: E402
from magazine.services.errors import ServiceError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

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


def _cors_origin_regex() -> str | None:
    """``cors_origin_regex`` from config.yaml, when the file is present."""
    path = Path(os.getenv("MAGAZINE_CONFIG", "config.yaml"))
    if not path.exists():
        return None
    return load_config(path).cors_origin_regex


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    configure_rate_limiter(engine=engine)
    logger.info("Magazine API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Magazine API shutting down")


app = FastAPI(
    title="Magazine Club API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_origin_regex=_cors_origin_regex(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.debug("%s %s → %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Mount routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(feed_router)
app.include_router(posts_router)
app.include_router(gamification_router)
app.include_router(notifications_router)
app.include_router(social_router)
app.include_router(invites_router)
app.include_router(announcements_router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {"message": "MAGAZINE API is running", "status": "active"}


@app.get("/health")
def health():
    return {"status": "ok"}

"""
magazine.database.engine — Engine, Sessions & the Thread Bridge
================================================================

Services are plain synchronous SQLAlchemy code.  The async auth routes
push them onto a worker thread with :func:`run_db` (bcrypt hashing is
slow enough to stall the event loop otherwise); the sync routes already
run in FastAPI's threadpool.

Usage::

    from magazine.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # DATABASE_URL from the environment
    init_db(engine)                      # create_all + idempotent seed

    user = await run_db(auth_service.authenticate, engine, email=..., password=...)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from magazine.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def create_db_engine() -> Engine:
    """Engine for ``DATABASE_URL`` with a pool sized for one API process.

    Raises
    ------
    RuntimeError
        If ``DATABASE_URL`` is missing.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at PostgreSQL."
        )

    engine = create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


def init_db(engine: Engine) -> None:
    """Create missing tables, then seed settings, badges and rewards.

    Alembic owns the production schema; ``create_all`` only fills the
    gap for fresh dev and test databases.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema ready")

    from magazine.database.seed import seed_all

    seed_all(engine)


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Transaction scope: commit on clean exit, roll back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a blocking service call on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)

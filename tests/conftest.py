"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from functools import lru_cache

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of magazine.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite has no JSONB; render it as TEXT.  SQLAlchemy's JSON processing
# still serializes values on the way in and out.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from magazine.database.models import Base, Role, User  # noqa: E402
from magazine.database.seed import seed_all  # noqa: E402

TEST_PASSWORD = "secret123"

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@lru_cache(maxsize=1)
def shared_password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    from magazine.services.auth_service import get_password_hash

    return get_password_hash(TEST_PASSWORD)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Magazine tables, seeded.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db`` and the rate
    limiter).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


def make_user(
    engine: Engine,
    *,
    email: str | None = None,
    name: str = "Member",
    role: Role = Role.MEMBER,
    zions: int = 0,
    **fields,
) -> str:
    """Insert a user directly and return its id."""
    with Session(engine) as session:
        user = User(
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=shared_password_hash(),
            name=name,
            display_name=name,
            role=role.value,
            zions=zions,
            **fields,
        )
        session.add(user)
        session.commit()
        return user.id


@pytest.fixture
def member_id(db_engine: Engine) -> str:
    return make_user(db_engine, name="Ana", email="ana@example.com")


@pytest.fixture
def other_id(db_engine: Engine) -> str:
    return make_user(db_engine, name="Bruno", email="bruno@example.com")


@pytest.fixture
def admin_id(db_engine: Engine) -> str:
    return make_user(db_engine, name="Admin", email="admin@example.com", role=Role.ADMIN)


def auth_headers(user_id: str, role: Role = Role.MEMBER) -> dict[str, str]:
    from magazine.api.deps import create_access_token

    return {"Authorization": f"Bearer {create_access_token(user_id, role.value, 7)}"}


@pytest.fixture
def test_config():
    from magazine.config import MagazineConfig

    return MagazineConfig(
        community_name="Test Club",
        api_host="127.0.0.1",
        api_port=8000,
        expose_reset_tokens=True,
    )


@pytest.fixture
def client(db_engine: Engine, test_config):
    """FastAPI TestClient wired to the in-memory engine.

    ``raise_server_exceptions=False`` so unexpected errors surface as 500s.
    """
    from fastapi.testclient import TestClient

    from magazine.api.deps import get_config, get_engine
    from magazine.api.main import app
    from magazine.api.rate_limit import configure_rate_limiter

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    configure_rate_limiter(engine=db_engine)
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()

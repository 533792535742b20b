"""
magazine.api.deps — FastAPI dependency injection
=================================================
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from magazine.config import MagazineConfig, load_config
from magazine.database.engine import create_db_engine
from magazine.database.models import Role, User

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "magazine-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> MagazineConfig:
    return load_config()


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------
def create_access_token(user_id: str, role: str, expiry_days: int) -> str:
    """Sign an HS256 token carrying ``sub``, ``role`` and ``exp``."""
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(UTC) + timedelta(days=expiry_days),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _decode_bearer(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Access token required")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        logger.warning("Rejected invalid or expired token")
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    return payload


def _current_role(engine: Engine, user_id: str) -> str | None:
    with Session(engine) as session:
        user = session.get(User, user_id)
        return user.role if user is not None else None


# ---------------------------------------------------------------------------
# Auth dependencies
# ---------------------------------------------------------------------------
def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> dict:
    """Validate the bearer token and return its claims.

    ``role`` is refreshed from the database so demotions apply at once;
    tokens of deleted accounts are rejected.
    """
    payload = _decode_bearer(authorization)
    role = _current_role(engine, payload["sub"])
    if role is None:
        logger.warning("Token for unknown user %s", payload["sub"])
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User no longer exists")
    return {**payload, "role": role}


def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> dict | None:
    """Like :func:`get_current_user` but anonymous callers yield ``None``."""
    if not authorization:
        return None
    return get_current_user(authorization, engine)


def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Require the caller's current role to be ADMIN."""
    if user["role"] != Role.ADMIN:
        logger.warning("Non-admin %s denied admin route", user["sub"])
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Admin access required")
    return user


def is_admin(user: dict | None) -> bool:
    return user is not None and user.get("role") == Role.ADMIN

"""
magazine.services.auth_service — Accounts, Credentials & Login Rewards
=======================================================================

Password hashing uses :mod:`pwdlib` with the bcrypt hasher.  Token
issuance lives in :mod:`magazine.api.auth`; this module only deals
with users and credentials.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import MembershipType, Role, User
from magazine.engine.badges import BadgeAction
from magazine.services import gamification_service, notification_service
from magazine.services.errors import Conflict, InvalidRequest

logger = logging.getLogger(__name__)

password_hash = PasswordHash((BcryptHasher(),))

RESET_TOKEN_TTL = timedelta(hours=1)
GENERATED_PASSWORD_LENGTH = 8
_PASSWORD_ALPHABET = string.ascii_letters + string.digits


# ---------------------------------------------------------------------------
# Password helpers
# ---------------------------------------------------------------------------

def get_password_hash(password: str) -> str:
    return password_hash.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Return ``(verified, updated_hash)``; *updated_hash* is set when the
    stored hash should be upgraded."""
    return password_hash.verify_and_update(plain_password, hashed_password)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return password_hash.hash(secrets.token_urlsafe(16))


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _auth_user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "trophies": user.trophies,
        "zions": user.zions,
        "avatarUrl": user.avatar_url,
        "membershipType": user.membership_type,
    }


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------

def register(
    engine,
    *,
    email: str,
    password: str,
    name: str,
    membership_type: str = MembershipType.MAGAZINE.value,
) -> dict:
    email = normalize_email(email)
    if membership_type not in {m.value for m in MembershipType}:
        raise InvalidRequest(f"Invalid membership type: {membership_type}")
    with Session(engine) as session:
        if session.scalar(select(User.id).where(User.email == email)) is not None:
            raise Conflict("User already exists")
        user = User(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            display_name=name,
            membership_type=membership_type,
        )
        session.add(user)
        session.commit()
        logger.info("Registered user %s (%s)", user.id, membership_type)
        return _auth_user_dict(user)


def authenticate(engine, *, email: str, password: str) -> dict:
    """Verify credentials and apply the login side effects.

    In one transaction: welcome notification for an empty inbox, the
    first-login badge, then the LOGIN badge rules.  Unknown email and
    wrong password fail with the same message.
    """
    email = normalize_email(email)
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.email == email))
        if user is None:
            # Keep response timing independent of whether the account exists
            verify_password(password, _dummy_hash())
            logger.warning("Login failed for unknown email")
            raise InvalidRequest("Invalid credentials")

        verified, updated_hash = verify_password(password, user.password_hash)
        if not verified:
            logger.warning("Login failed for user %s", user.id)
            raise InvalidRequest("Invalid credentials")
        if updated_hash:
            user.password_hash = updated_hash

        notification_service.notify_welcome_if_empty(session, user.id)
        gamification_service.ensure_first_steps(session, user)
        gamification_service.check_badges(session, user, BadgeAction.LOGIN)
        session.commit()
        return _auth_user_dict(user)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def request_password_reset(engine, email: str, *, now: datetime | None = None) -> str | None:
    """Store a one-hour reset token.  Returns it, or None for unknown emails."""
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.email == normalize_email(email)))
        if user is None:
            return None
        token = secrets.token_hex(32)
        user.reset_token = token
        user.reset_token_expiry = now + RESET_TOKEN_TTL
        session.commit()
        logger.info("Password reset requested for user %s", user.id)
        return token


def reset_password(engine, *, token: str, new_password: str, now: datetime | None = None) -> None:
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.reset_token == token)) if token else None
        expiry = user.reset_token_expiry if user is not None else None
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        if user is None or expiry is None or expiry <= now:
            raise InvalidRequest("Invalid or expired token")
        user.password_hash = get_password_hash(new_password)
        user.reset_token = None
        user.reset_token_expiry = None
        session.commit()
        logger.info("Password reset completed for user %s", user.id)


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

def ensure_admin_account(engine, *, email: str, password: str, name: str = "Admin") -> bool:
    """Create or promote the bootstrap admin.  Returns True when created."""
    email = normalize_email(email)
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.email == email))
        if user is not None:
            if user.role != Role.ADMIN:
                user.role = Role.ADMIN.value
                session.commit()
                logger.info("Promoted %s to admin", email)
            return False
        session.add(User(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            display_name=name,
            role=Role.ADMIN.value,
        ))
        session.commit()
        logger.info("Bootstrap admin %s created", email)
        return True

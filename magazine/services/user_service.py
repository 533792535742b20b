"""
magazine.services.user_service — Profiles & Member Administration
==================================================================
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import AdminActionType, MembershipType, Post, User
from magazine.services.admin_service import log_admin_action, row_to_dict
from magazine.services.auth_service import generate_password, get_password_hash
from magazine.services.errors import InvalidRequest, NotFound
from magazine.services.post_service import post_query, serialize_posts
from magazine.services.serializers import iso, user_private, user_public

logger = logging.getLogger(__name__)

_UNSET = object()


def _get_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------

def get_me(engine, user_id: str) -> dict:
    with Session(engine) as session:
        return user_private(_get_user(session, user_id))


def update_me(
    engine,
    user_id: str,
    *,
    name: str | None = None,
    display_name=_UNSET,
    bio=_UNSET,
    avatar_url=_UNSET,
) -> dict:
    """Update the caller's profile.

    Omitted fields are left alone.  For the optional text fields an empty
    string clears the value; an empty ``name`` is ignored because every
    member needs one.  Gamification counters are never touched here.
    """
    with Session(engine) as session:
        user = _get_user(session, user_id)
        if name is not None and name.strip():
            user.name = name.strip()
        if display_name is not _UNSET:
            user.display_name = display_name or None
        if bio is not _UNSET:
            user.bio = bio or None
        if avatar_url is not _UNSET:
            user.avatar_url = avatar_url or None
        session.commit()
        return user_private(user)


# ---------------------------------------------------------------------------
# Public profiles
# ---------------------------------------------------------------------------

def get_profile(engine, user_id: str) -> dict:
    with Session(engine) as session:
        return user_public(_get_user(session, user_id))


def user_posts(engine, user_id: str, viewer_id: str | None = None) -> list[dict]:
    with Session(engine) as session:
        _get_user(session, user_id)
        posts = session.scalars(
            post_query()
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id)
        ).all()
        return serialize_posts(session, list(posts), viewer_id)


def list_users(engine, *, include_private: bool = False) -> list[dict]:
    """Members ordered by trophies; admins also see contact and balance fields."""
    with Session(engine) as session:
        users = session.scalars(
            select(User).order_by(User.trophies.desc(), User.created_at)
        ).all()
        result = []
        for u in users:
            data = user_public(u)
            if include_private:
                data.update({
                    "email": u.email,
                    "role": u.role,
                    "zions": u.zions,
                    "createdAt": iso(u.created_at),
                })
            result.append(data)
        return result


# ---------------------------------------------------------------------------
# Admin operations (audited)
# ---------------------------------------------------------------------------

def delete_user(engine, user_id: str, *, actor_id: str) -> None:
    if user_id == actor_id:
        raise InvalidRequest("Cannot delete yourself")
    with Session(engine) as session:
        user = _get_user(session, user_id)
        before = row_to_dict(user)
        session.delete(user)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="users",
            target_id=user_id,
            before=before,
            after=None,
        )
        session.commit()


def reset_user_password(engine, user_id: str, *, actor_id: str) -> str:
    """Replace a member's password with a generated one and return it."""
    password = generate_password()
    with Session(engine) as session:
        user = _get_user(session, user_id)
        user.password_hash = get_password_hash(password)
        user.reset_token = None
        user.reset_token_expiry = None
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.PASSWORD_RESET,
            target_table="users",
            target_id=user_id,
            before=None,
            after=None,
        )
        session.commit()
    return password


def set_membership(engine, user_id: str, membership_type: str, *, actor_id: str) -> dict:
    if membership_type not in {m.value for m in MembershipType}:
        raise InvalidRequest("Invalid membership type")
    with Session(engine) as session:
        user = _get_user(session, user_id)
        before = {"membership_type": user.membership_type}
        user.membership_type = membership_type
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table="users",
            target_id=user_id,
            before=before,
            after={"membership_type": membership_type},
        )
        session.commit()
        return user_private(user)

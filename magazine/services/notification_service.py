"""
magazine.services.notification_service — Inbox Fan-out & Reads
===============================================================

The ``notify_*`` helpers take an open session and add rows to the current
transaction, so a like or a badge award and its notification commit
together.  The engine-level functions serve the inbox endpoints.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from magazine.database.models import Notification, NotificationType, Role, User
from magazine.services.errors import NotFound
from magazine.services.serializers import actor_summary, notification_dict

logger = logging.getLogger(__name__)

UNKNOWN_ACTOR = "Alguém"
COMMENT_PREVIEW_CHARS = 20
WELCOME_MESSAGE = "Bem-vindo ao Clube Magazine! Explore benefícios exclusivos."


# ---------------------------------------------------------------------------
# Fan-out helpers (session-level)
# ---------------------------------------------------------------------------

def notify(
    session: Session,
    user_id: str,
    type_: NotificationType,
    content: str,
    data: dict | None = None,
) -> Notification:
    """Add one notification to the current transaction."""
    row = Notification(user_id=user_id, type=type_.value, content=content, data=data)
    session.add(row)
    return row


def _actor_name(actor: User | None) -> str:
    return actor.name if actor is not None and actor.name else UNKNOWN_ACTOR


def notify_post_liked(session: Session, owner_id: str, actor: User, post_id: str) -> Notification:
    return notify(
        session, owner_id, NotificationType.LIKE,
        f"{_actor_name(actor)} curtiu sua postagem.",
        {"actor": actor_summary(actor), "postId": post_id},
    )


def notify_story_liked(session: Session, owner_id: str, actor: User) -> Notification:
    return notify(
        session, owner_id, NotificationType.LIKE,
        f"{_actor_name(actor)} curtiu seu story.",
        {"actor": actor_summary(actor), "isStory": True},
    )


def comment_preview(text: str) -> str:
    if len(text) <= COMMENT_PREVIEW_CHARS:
        return text
    return f"{text[:COMMENT_PREVIEW_CHARS]}..."


def notify_post_commented(
    session: Session, owner_id: str, actor: User, post_id: str, text: str,
) -> Notification:
    return notify(
        session, owner_id, NotificationType.COMMENT,
        f'{_actor_name(actor)} comentou: "{comment_preview(text)}"',
        {"actor": actor_summary(actor), "postId": post_id},
    )


def notify_badge(session: Session, user_id: str, badge_name: str, trophies: int) -> Notification:
    return notify(
        session, user_id, NotificationType.BADGE,
        f"Você desbloqueou a conquista: {badge_name}! (+{trophies} Troféus)",
    )


def notify_friend_request(session: Session, addressee_id: str, actor: User) -> Notification:
    return notify(
        session, addressee_id, NotificationType.FRIEND_REQUEST,
        f"{_actor_name(actor)} enviou uma solicitação de amizade.",
        {"actor": actor_summary(actor)},
    )


def notify_friend_accepted(session: Session, requester_id: str, actor: User) -> Notification:
    return notify(
        session, requester_id, NotificationType.SYSTEM,
        f"{_actor_name(actor)} aceitou sua solicitação de amizade.",
        {"actor": actor_summary(actor)},
    )


def notify_welcome_if_empty(session: Session, user_id: str) -> bool:
    """Greet members whose inbox is empty.  Returns True when one was sent."""
    has_any = session.scalar(
        select(Notification.id).where(Notification.user_id == user_id).limit(1)
    )
    if has_any is not None:
        return False
    notify(session, user_id, NotificationType.SYSTEM, WELCOME_MESSAGE)
    return True


def notify_admins(session: Session, content: str) -> int:
    """SYSTEM notification to every admin.  Returns the number notified."""
    admin_ids = session.scalars(select(User.id).where(User.role == Role.ADMIN)).all()
    for admin_id in admin_ids:
        notify(session, admin_id, NotificationType.SYSTEM, content)
    return len(admin_ids)


# ---------------------------------------------------------------------------
# Inbox reads & writes
# ---------------------------------------------------------------------------

def list_notifications(engine, user_id: str) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        ).all()
        return [notification_dict(n) for n in rows]


def unread_count(engine, user_id: str) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        ) or 0


def mark_read(engine, user_id: str, notification_id: str) -> int:
    """Mark one notification, or all of them for ``"all"``, as read.

    Returns the number of rows updated.  A notification that belongs to
    someone else is reported as missing.
    """
    with Session(engine) as session:
        if notification_id == "all":
            result = session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.read.is_(False))
                .values(read=True)
            )
            session.commit()
            return result.rowcount or 0

        row = session.get(Notification, notification_id)
        if row is None or row.user_id != user_id:
            raise NotFound("Notification not found")
        row.read = True
        session.commit()
        return 1

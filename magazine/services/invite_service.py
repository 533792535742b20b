"""
magazine.services.invite_service — Invite Request Queue
========================================================

Prospective members ask for an invite; an admin approves the request,
which creates the account with a generated password for the admin to
hand over.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import (
    AdminActionType,
    InviteRequest,
    InviteStatus,
    Role,
    User,
)
from magazine.services import notification_service
from magazine.services.admin_service import log_admin_action, row_to_dict
from magazine.services.auth_service import generate_password, get_password_hash, normalize_email
from magazine.services.errors import InvalidRequest, NotFound
from magazine.services.serializers import invite_dict, user_private

logger = logging.getLogger(__name__)


def create_request(engine, *, name: str, email: str, instagram: str | None = None) -> dict:
    name = (name or "").strip()
    email = normalize_email(email or "")
    if not name or not email:
        raise InvalidRequest("Name and email are required")
    with Session(engine) as session:
        if session.scalar(select(InviteRequest.id).where(InviteRequest.email == email)):
            raise InvalidRequest("Request already exists for this email")
        if session.scalar(select(User.id).where(User.email == email)):
            raise InvalidRequest("User already exists with this email")

        invite = InviteRequest(name=name, email=email, instagram=(instagram or "").strip() or None)
        session.add(invite)
        notified = notification_service.notify_admins(
            session, f"Nova solicitação de convite: {name} ({email})",
        )
        session.commit()
        logger.info("Invite requested for %s (%d admins notified)", email, notified)
        return invite_dict(invite)


def list_pending(engine) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(InviteRequest)
            .where(InviteRequest.status == InviteStatus.PENDING)
            .order_by(InviteRequest.created_at.desc())
        ).all()
        return [invite_dict(r) for r in rows]


def approve_request(engine, invite_id: str, *, actor_id: str) -> dict:
    """Create the member account and mark the request APPROVED."""
    with Session(engine) as session:
        invite = session.get(InviteRequest, invite_id)
        if invite is None:
            raise NotFound("Request not found")
        if invite.status != InviteStatus.PENDING:
            raise InvalidRequest("Request is not pending")
        if session.scalar(select(User.id).where(User.email == invite.email)):
            raise InvalidRequest("User already exists with this email")

        password = generate_password()
        user = User(
            name=invite.name,
            email=invite.email,
            password_hash=get_password_hash(password),
            display_name=invite.instagram or invite.name,
            role=Role.MEMBER.value,
        )
        session.add(user)
        before = row_to_dict(invite)
        invite.status = InviteStatus.APPROVED.value
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.APPROVE,
            target_table="invite_requests",
            target_id=invite_id,
            before=before,
            after={**before, "status": invite.status, "user_id": user.id},
        )
        session.commit()
        return {
            "message": "Request approved and user created",
            "user": user_private(user),
            "generatedPassword": password,
        }


def reject_request(engine, invite_id: str, *, actor_id: str) -> dict:
    with Session(engine) as session:
        invite = session.get(InviteRequest, invite_id)
        if invite is None:
            raise NotFound("Request not found")
        before = row_to_dict(invite)
        invite.status = InviteStatus.REJECTED.value
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.REJECT,
            target_table="invite_requests",
            target_id=invite_id,
            before=before,
            after={**before, "status": invite.status},
        )
        session.commit()
        return {"message": "Request rejected"}

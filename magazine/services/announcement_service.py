"""
magazine.services.announcement_service — Banner Campaigns
==========================================================

Reads are public; every mutation is admin-only and audited.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import AdminActionType, Announcement
from magazine.services.admin_service import log_admin_action, row_to_dict
from magazine.services.errors import NotFound
from magazine.services.serializers import announcement_dict

logger = logging.getLogger(__name__)


def list_announcements(engine) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Announcement).order_by(Announcement.created_at.desc())
        ).all()
        return [announcement_dict(a) for a in rows]


def get_active(engine) -> dict | None:
    """Newest active announcement, or None."""
    with Session(engine) as session:
        row = session.scalar(
            select(Announcement)
            .where(Announcement.active.is_(True))
            .order_by(Announcement.created_at.desc())
            .limit(1)
        )
        return announcement_dict(row) if row else None


def create_announcement(engine, *, actor_id: str, **fields) -> dict:
    """Create an announcement; it is active from the start."""
    with Session(engine) as session:
        row = Announcement(**fields, active=True)
        session.add(row)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table="announcements",
            target_id=row.id,
            before=None,
            after=row_to_dict(row),
        )
        session.commit()
        return announcement_dict(row)


def delete_announcement(engine, announcement_id: str, *, actor_id: str) -> None:
    with Session(engine) as session:
        row = session.get(Announcement, announcement_id)
        if row is None:
            raise NotFound("Announcement not found")
        before = row_to_dict(row)
        session.delete(row)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="announcements",
            target_id=announcement_id,
            before=before,
            after=None,
        )
        session.commit()


def toggle_announcement(engine, announcement_id: str, *, actor_id: str) -> dict:
    with Session(engine) as session:
        row = session.get(Announcement, announcement_id)
        if row is None:
            raise NotFound("Announcement not found")
        before = row_to_dict(row)
        row.active = not row.active
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table="announcements",
            target_id=announcement_id,
            before=before,
            after=row_to_dict(row),
        )
        session.commit()
        logger.info("Announcement %s active=%s", announcement_id, row.active)
        return announcement_dict(row)

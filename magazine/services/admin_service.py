"""
magazine.services.admin_service — Audit Trail & Admin Metrics
==============================================================

Every admin mutation in the other services follows the same pattern:
  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after JSON
  5. Commit

The helpers here implement steps 2 and 4; this module also serves the
audit log listing and the dashboard metrics.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from magazine.database.models import (
    AdminLog,
    InviteRequest,
    InviteStatus,
    Post,
    Redemption,
    User,
)

logger = logging.getLogger(__name__)

# Columns never copied into audit snapshots
_REDACTED_COLUMNS = frozenset({"password_hash", "reset_token", "reset_token_expiry"})


# ---------------------------------------------------------------------------
# Generic audit helpers
# ---------------------------------------------------------------------------

def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        if col.name in _REDACTED_COLUMNS:
            continue
        val = getattr(obj, col.key if col.key != "metadata" else "metadata_", None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: str,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=str(action_type),
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))
    logger.info(
        "Admin %s: %s %s/%s", actor_id, action_type, target_table, target_id,
    )


# ---------------------------------------------------------------------------
# Audit log listing
# ---------------------------------------------------------------------------

def list_audit_log(engine, *, page: int = 1, page_size: int = 50) -> dict:
    """Paginated audit log, newest first."""
    with Session(engine) as session:
        total = session.scalar(select(func.count()).select_from(AdminLog)) or 0
        rows = session.scalars(
            select(AdminLog)
            .order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
        return {
            "entries": [
                {
                    "id": r.id,
                    "actorId": r.actor_id,
                    "actionType": r.action_type,
                    "targetTable": r.target_table,
                    "targetId": r.target_id,
                    "before": r.before_snapshot,
                    "after": r.after_snapshot,
                    "reason": r.reason,
                    "timestamp": r.timestamp.isoformat() if r.timestamp else None,
                }
                for r in rows
            ],
            "total": total,
            "page": page,
            "pageSize": page_size,
        }


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def get_metrics(engine) -> dict:
    with Session(engine) as session:
        return {
            "users": session.scalar(select(func.count()).select_from(User)) or 0,
            "posts": session.scalar(select(func.count()).select_from(Post)) or 0,
            "zionsInCirculation": session.scalar(
                select(func.coalesce(func.sum(User.zions), 0))
            ) or 0,
            "pendingInvites": session.scalar(
                select(func.count())
                .select_from(InviteRequest)
                .where(InviteRequest.status == InviteStatus.PENDING)
            ) or 0,
            "redemptions": session.scalar(
                select(func.count()).select_from(Redemption)
            ) or 0,
        }

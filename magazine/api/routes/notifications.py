"""
magazine.api.routes.notifications — Caller's inbox
===================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from magazine.api.deps import get_current_user, get_engine
from magazine.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return notification_service.list_notifications(engine, user["sub"])


@router.get("/unread-count")
def unread_count(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return {"count": notification_service.unread_count(engine, user["sub"])}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Mark one notification as read; ``all`` marks the whole inbox."""
    updated = notification_service.mark_read(engine, user["sub"], notification_id)
    return {"message": "Notification marked as read", "updated": updated}

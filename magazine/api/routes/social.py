"""
magazine.api.routes.social — Friend requests & friend lists
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from magazine.api.deps import get_current_user, get_engine
from magazine.services import social_service

router = APIRouter(prefix="/social", tags=["social"])


@router.post("/request/{user_id}")
def send_request(user_id: str, user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return social_service.send_request(engine, user["sub"], user_id)


@router.post("/request/{request_id}/accept")
def accept_request(
    request_id: str, user: dict = Depends(get_current_user), engine=Depends(get_engine),
):
    return social_service.accept_request(engine, request_id, user["sub"])


@router.post("/request/{request_id}/reject")
def reject_request(
    request_id: str, user: dict = Depends(get_current_user), engine=Depends(get_engine),
):
    return social_service.reject_request(engine, request_id, user["sub"])


@router.get("/friends")
def friends(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return social_service.list_friends(engine, user["sub"])


@router.get("/requests")
def pending(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return social_service.pending_requests(engine, user["sub"])


@router.get("/status/{target_id}")
def status(target_id: str, user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return social_service.friendship_status(engine, user["sub"], target_id)

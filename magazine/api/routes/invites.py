"""
magazine.api.routes.invites — Public invite requests & admin review
====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from magazine.api.deps import get_current_admin, get_engine
from magazine.api.rate_limit import rate_limited_admin, rate_limited_invite
from magazine.services import invite_service

router = APIRouter(prefix="/invites", tags=["invites"])


class InviteCreate(BaseModel):
    # Missing name or email is a 400 from the service
    name: str | None = None
    email: str | None = None
    instagram: str | None = None


@router.post("", status_code=201, dependencies=[Depends(rate_limited_invite)])
def create_invite(body: InviteCreate, engine=Depends(get_engine)):
    return invite_service.create_request(
        engine, name=body.name or "", email=body.email or "", instagram=body.instagram,
    )


@router.get("")
def list_pending(admin: dict = Depends(get_current_admin), engine=Depends(get_engine)):
    return invite_service.list_pending(engine)


@router.post("/{invite_id}/approve")
def approve(invite_id: str, admin: dict = Depends(rate_limited_admin), engine=Depends(get_engine)):
    return invite_service.approve_request(engine, invite_id, actor_id=admin["sub"])


@router.post("/{invite_id}/reject")
def reject(invite_id: str, admin: dict = Depends(rate_limited_admin), engine=Depends(get_engine)):
    return invite_service.reject_request(engine, invite_id, actor_id=admin["sub"])

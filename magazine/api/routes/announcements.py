"""
magazine.api.routes.announcements — Banner campaigns
=====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from magazine.api.deps import get_engine
from magazine.api.rate_limit import rate_limited_admin
from magazine.services import announcement_service

router = APIRouter(prefix="/announcements", tags=["announcements"])


class AnnouncementCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    logo_url: str | None = None
    tag: str | None = None
    subscription_type: str | None = None
    description: str | None = None
    background_image_url: str | None = None
    button_text: str | None = None
    link: str | None = None


@router.get("")
def list_announcements(engine=Depends(get_engine)):
    return announcement_service.list_announcements(engine)


@router.get("/active")
def active_announcement(engine=Depends(get_engine)):
    return announcement_service.get_active(engine)


@router.post("", status_code=201)
def create_announcement(
    body: AnnouncementCreate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    return announcement_service.create_announcement(
        engine, actor_id=admin["sub"], **body.model_dump(),
    )


@router.delete("/{announcement_id}")
def delete_announcement(
    announcement_id: str,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    announcement_service.delete_announcement(engine, announcement_id, actor_id=admin["sub"])
    return {"message": "Announcement deleted"}


@router.put("/{announcement_id}/toggle")
def toggle_announcement(
    announcement_id: str,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    return announcement_service.toggle_announcement(
        engine, announcement_id, actor_id=admin["sub"],
    )

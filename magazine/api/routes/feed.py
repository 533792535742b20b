"""
magazine.api.routes.feed — Feed, likes, comments & story likes
===============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic.alias_generators import to_camel

from magazine.api.deps import get_current_user, get_engine, get_optional_user
from magazine.database.models import MediaType
from magazine.services import feed_service, post_service

router = APIRouter(prefix="/feed", tags=["feed"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ImagePostCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_url: HttpUrl
    caption: str | None = None


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
@router.get("")
def get_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=feed_service.MAX_PAGE_SIZE),
    user: dict | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    viewer_id = user["sub"] if user else None
    return feed_service.get_feed(engine, viewer_id, page=page, limit=limit)


@router.post("", status_code=201)
def create_image_post(
    body: ImagePostCreate,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return post_service.create_post(
        engine,
        user["sub"],
        caption=body.caption,
        image_url=str(body.image_url),
        media_type=MediaType.IMAGE.value,
    )


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------
@router.post("/stories/{story_user_id}/like")
def like_story(
    story_user_id: str,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return feed_service.like_story(engine, story_user_id, user["sub"])


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------
@router.post("/{post_id}/like")
def toggle_like(
    post_id: str,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return feed_service.toggle_like(engine, post_id, user["sub"])


@router.post("/{post_id}/comment", status_code=201)
def add_comment(
    post_id: str,
    body: CommentCreate,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return feed_service.add_comment(engine, post_id, user["sub"], body.text)

"""
magazine.api.routes.posts — Post CRUD & comment threads
========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from magazine.api.deps import get_current_user, get_engine, get_optional_user
from magazine.api.routes.feed import CommentCreate
from magazine.database.models import MediaType
from magazine.services import feed_service, post_service

router = APIRouter(prefix="/posts", tags=["posts"])


class PostCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    caption: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_highlight: bool = False
    media_type: MediaType = MediaType.IMAGE


@router.post("", status_code=201)
def create_post(
    body: PostCreate,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return post_service.create_post(
        engine,
        user["sub"],
        caption=body.caption,
        image_url=body.image_url,
        video_url=body.video_url,
        tags=body.tags,
        is_highlight=body.is_highlight,
        media_type=body.media_type.value,
    )


@router.get("/{post_id}")
def get_post(
    post_id: str,
    user: dict | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    return post_service.get_post(engine, post_id, user["sub"] if user else None)


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    post_service.delete_post(engine, post_id, actor_id=user["sub"])
    return {"message": "Post deleted successfully"}


@router.get("/{post_id}/comments")
def list_comments(post_id: str, engine=Depends(get_engine)):
    return post_service.list_comments(engine, post_id)


@router.post("/{post_id}/comments", status_code=201)
def add_comment(
    post_id: str,
    body: CommentCreate,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return feed_service.add_comment(engine, post_id, user["sub"], body.text)

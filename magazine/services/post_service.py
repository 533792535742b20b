"""
magazine.services.post_service — Post Lifecycle
================================================

Creating a post is the richest single transaction in the app: optional
highlight debit, the post and its tags, the posting reward, XP and the
POST badge rules all commit together or not at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from magazine.database.models import (
    AdminActionType,
    Comment,
    LedgerKind,
    Like,
    MediaType,
    Post,
    PostTag,
    User,
)
from magazine.engine.badges import BadgeAction
from magazine.services import gamification_service
from magazine.services.admin_service import log_admin_action, row_to_dict
from magazine.services.errors import Forbidden, InvalidRequest, NotFound
from magazine.services.serializers import comment_dict, post_dict
from magazine.services.settings_service import load_economy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def post_query():
    """``select(Post)`` with the author and tags eagerly loaded."""
    return select(Post).options(selectinload(Post.author), selectinload(Post.tags))


def liked_post_ids(session: Session, viewer_id: str | None, post_ids: Iterable[str]) -> set[str]:
    """Subset of *post_ids* the viewer has liked (empty for anonymous)."""
    ids = list(post_ids)
    if viewer_id is None or not ids:
        return set()
    return set(session.scalars(
        select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(ids))
    ).all())


def serialize_posts(session: Session, posts: list[Post], viewer_id: str | None) -> list[dict]:
    liked = liked_post_ids(session, viewer_id, (p.id for p in posts))
    return [post_dict(p, is_liked=p.id in liked) for p in posts]


def clean_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping order."""
    seen: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_post(
    engine,
    user_id: str,
    *,
    caption: str | None = None,
    image_url: str | None = None,
    video_url: str | None = None,
    tags: list[str] | None = None,
    is_highlight: bool = False,
    media_type: str = MediaType.IMAGE.value,
) -> dict:
    """Publish a post and pay the posting rewards.

    Returns the serialized post plus ``newBadges`` and ``zionsEarned``.
    """
    if media_type not in {m.value for m in MediaType}:
        raise InvalidRequest(f"Invalid media type: {media_type}")

    with Session(engine) as session:
        user = session.get(User, user_id, with_for_update=True)
        if user is None:
            raise NotFound("User not found")
        economy = load_economy(session)

        post = Post(
            user_id=user_id,
            caption=caption,
            image_url=image_url,
            video_url=video_url,
            media_type=media_type,
            is_highlight=bool(is_highlight),
        )
        post.tags = [PostTag(tag=t) for t in clean_tags(tags)]
        session.add(post)
        session.flush()

        if is_highlight and not user.is_admin:
            cost = economy.highlight_cost
            if user.zions < cost:
                raise Forbidden(
                    f"Zions insuficientes para destaque (Custo: {cost} Zions)"
                )
            gamification_service.spend_zions(
                session, user, cost,
                kind=LedgerKind.HIGHLIGHT,
                reason="Highlight Post Cost",
                reference_id=post.id,
            )

        gamification_service.award_zions(
            session, user, economy.zions_per_post,
            kind=LedgerKind.POST, reason="Created a post", reference_id=post.id,
        )
        gamification_service.grant_xp(session, user, economy.xp_per_post, economy)
        new_badges = gamification_service.check_badges(session, user, BadgeAction.POST)
        session.commit()

        post = session.scalar(post_query().where(Post.id == post.id))
        logger.info("Post %s created by %s (highlight=%s)", post.id, user_id, post.is_highlight)
        return {
            **post_dict(post),
            "newBadges": new_badges,
            "zionsEarned": economy.zions_per_post,
        }


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def get_post(engine, post_id: str, viewer_id: str | None = None) -> dict:
    with Session(engine) as session:
        post = session.scalar(post_query().where(Post.id == post_id))
        if post is None:
            raise NotFound("Post not found")
        return serialize_posts(session, [post], viewer_id)[0]


def list_comments(engine, post_id: str) -> list[dict]:
    """Comments on a post, oldest first."""
    with Session(engine) as session:
        if session.get(Post, post_id) is None:
            raise NotFound("Post not found")
        comments = session.scalars(
            select(Comment)
            .where(Comment.post_id == post_id)
            .options(selectinload(Comment.user))
            .order_by(Comment.created_at, Comment.id)
        ).all()
        return [comment_dict(c) for c in comments]


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def delete_post(engine, post_id: str, *, actor_id: str) -> None:
    """Delete a post with its tags, likes and comments.

    Authors may delete their own posts; admins may delete any post, and
    those moderation deletions are audited.
    """
    with Session(engine) as session:
        post = session.get(Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        actor = session.get(User, actor_id)
        is_owner = post.user_id == actor_id
        if not is_owner and (actor is None or not actor.is_admin):
            raise Forbidden("Unauthorized")

        before = row_to_dict(post)
        session.delete(post)
        if not is_owner:
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.DELETE,
                target_table="posts",
                target_id=post_id,
                before=before,
                after=None,
            )
        session.commit()
        logger.info("Post %s deleted by %s", post_id, actor_id)

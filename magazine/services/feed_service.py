"""
magazine.services.feed_service — Feed, Likes, Comments & Story Likes
=====================================================================

Engagement fan-out: every like or comment updates the post counters,
notifies the post owner (never for self-engagement), pays the actor and
runs the matching badge rules inside one transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import Comment, LedgerKind, Like, Post, User
from magazine.engine.badges import BadgeAction
from magazine.services import gamification_service, notification_service
from magazine.services.errors import InvalidRequest, NotFound
from magazine.services.post_service import post_query, serialize_posts
from magazine.services.serializers import comment_dict
from magazine.services.settings_service import load_economy

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def get_feed(engine, viewer_id: str | None, *, page: int = 1, limit: int = 10) -> list[dict]:
    """Posts newest first, ``isLiked`` relative to *viewer_id*."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    with Session(engine) as session:
        posts = session.scalars(
            post_query()
            .order_by(Post.created_at.desc(), Post.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return serialize_posts(session, list(posts), viewer_id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

def toggle_like(engine, post_id: str, user_id: str) -> dict:
    """Like or unlike a post.

    The like Zion is paid only the first time a member ever likes a given
    post, so unlike/re-like cycles cannot farm currency.
    """
    with Session(engine) as session:
        post = session.get(Post, post_id, with_for_update=True)
        if post is None:
            raise NotFound("Post not found")
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")

        existing = session.scalar(
            select(Like).where(Like.post_id == post_id, Like.user_id == user_id)
        )
        if existing is not None:
            session.delete(existing)
            post.likes_count = max(0, (post.likes_count or 0) - 1)
            session.commit()
            return {"message": "Unliked", "isLiked": False}

        session.add(Like(post_id=post_id, user_id=user_id))
        post.likes_count = (post.likes_count or 0) + 1

        if post.user_id != user_id:
            notification_service.notify_post_liked(session, post.user_id, user, post_id)

        zions_earned = 0
        if not gamification_service.has_ledger_entry(session, user_id, LedgerKind.LIKE, post_id):
            economy = load_economy(session)
            row = gamification_service.award_zions(
                session, user, economy.zions_per_like,
                kind=LedgerKind.LIKE, reason=f"Liked post {post_id}", reference_id=post_id,
            )
            zions_earned = row.amount if row is not None else 0

        new_badges = gamification_service.check_badges(session, user, BadgeAction.LIKE)
        session.commit()
        return {
            "message": "Liked",
            "isLiked": True,
            "newBadges": new_badges,
            "zionsEarned": zions_earned,
        }


def like_story(engine, story_user_id: str, user_id: str) -> dict:
    """Stories are assembled client-side; a story like is only a notification."""
    if story_user_id == user_id:
        raise InvalidRequest("Cannot like own story")
    with Session(engine) as session:
        owner = session.get(User, story_user_id)
        if owner is None:
            raise NotFound("User not found")
        actor = session.get(User, user_id)
        if actor is None:
            raise NotFound("User not found")
        notification_service.notify_story_liked(session, owner.id, actor)
        session.commit()
        return {"message": "Story liked"}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

def add_comment(engine, post_id: str, user_id: str, text: str) -> dict:
    text = text.strip()
    if not text:
        raise InvalidRequest("Comment text is required")
    with Session(engine) as session:
        post = session.get(Post, post_id, with_for_update=True)
        if post is None:
            raise NotFound("Post not found")
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        economy = load_economy(session)

        comment = Comment(post_id=post_id, user_id=user_id, text=text)
        session.add(comment)
        post.comments_count = (post.comments_count or 0) + 1

        if post.user_id != user_id:
            notification_service.notify_post_commented(
                session, post.user_id, user, post_id, text,
            )
            owner = session.get(User, post.user_id)
            gamification_service.grant_xp(
                session, owner, economy.xp_per_comment_received, economy,
            )

        gamification_service.award_zions(
            session, user, economy.zions_per_comment,
            kind=LedgerKind.COMMENT, reason="Commented on a post", reference_id=post_id,
        )
        new_badges = gamification_service.check_badges(session, user, BadgeAction.COMMENT)
        session.commit()

        session.refresh(comment)
        logger.info("Comment %s on post %s by %s", comment.id, post_id, user_id)
        return {
            **comment_dict(comment),
            "newBadges": new_badges,
            "zionsEarned": economy.zions_per_comment,
        }

"""
magazine.services.serializers — ORM → JSON dict helpers
========================================================

Services return plain dicts built while their session is still open, so
routes never touch lazy relationships after the session closes.  Keys are
camelCase to match the web client.
"""

from __future__ import annotations

from datetime import datetime

from magazine.database.models import (
    Announcement,
    Comment,
    InviteRequest,
    Notification,
    Post,
    Redemption,
    Reward,
    User,
    ZionHistory,
)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def author_summary(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
        "trophies": user.trophies,
    }


def actor_summary(user: User) -> dict:
    """Compact actor payload stored in notification ``data``."""
    return {"id": user.id, "name": user.name, "avatarUrl": user.avatar_url}


def user_public(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "displayName": user.display_name,
        "bio": user.bio,
        "avatarUrl": user.avatar_url,
        "trophies": user.trophies,
        "level": user.level,
        "membershipType": user.membership_type,
        "createdAt": iso(user.created_at),
    }


def user_private(user: User) -> dict:
    """Everything :func:`user_public` shows plus the owner-only fields."""
    data = user_public(user)
    data.update({
        "email": user.email,
        "role": user.role,
        "zions": user.zions,
        "xp": user.xp,
    })
    return data


def post_dict(post: Post, *, is_liked: bool = False) -> dict:
    return {
        "id": post.id,
        "userId": post.user_id,
        "caption": post.caption,
        "imageUrl": post.image_url,
        "videoUrl": post.video_url,
        "mediaType": post.media_type,
        "isHighlight": post.is_highlight,
        "likesCount": post.likes_count,
        "commentsCount": post.comments_count,
        "createdAt": iso(post.created_at),
        "user": author_summary(post.author),
        "tags": [t.tag for t in post.tags],
        "isLiked": is_liked,
    }


def comment_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "userId": comment.user_id,
        "text": comment.text,
        "createdAt": iso(comment.created_at),
        "user": author_summary(comment.user),
    }


def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "content": n.content,
        "data": n.data,
        "read": n.read,
        "createdAt": iso(n.created_at),
    }


def reward_dict(reward: Reward) -> dict:
    return {
        "id": reward.id,
        "title": reward.title,
        "type": reward.type,
        "costZions": reward.cost_zions,
        "stock": reward.stock,
        "metadata": reward.metadata_,
        "createdAt": iso(reward.created_at),
    }


def redemption_dict(r: Redemption, *, include_user: bool = False) -> dict:
    data = {
        "id": r.id,
        "userId": r.user_id,
        "rewardId": r.reward_id,
        "cost": r.cost,
        "code": r.code,
        "redeemedAt": iso(r.redeemed_at),
        "reward": reward_dict(r.reward),
    }
    if include_user:
        data["user"] = {"id": r.user.id, "name": r.user.name, "email": r.user.email}
    return data


def ledger_dict(row: ZionHistory) -> dict:
    return {
        "id": row.id,
        "amount": row.amount,
        "kind": row.kind,
        "reason": row.reason,
        "referenceId": row.reference_id,
        "createdAt": iso(row.created_at),
    }


def invite_dict(invite: InviteRequest) -> dict:
    return {
        "id": invite.id,
        "name": invite.name,
        "email": invite.email,
        "instagram": invite.instagram,
        "status": invite.status,
        "createdAt": iso(invite.created_at),
    }


def announcement_dict(a: Announcement) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "logoUrl": a.logo_url,
        "tag": a.tag,
        "subscriptionType": a.subscription_type,
        "description": a.description,
        "backgroundImageUrl": a.background_image_url,
        "buttonText": a.button_text,
        "link": a.link,
        "active": a.active,
        "createdAt": iso(a.created_at),
    }

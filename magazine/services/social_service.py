"""
magazine.services.social_service — Friend Graph
================================================

One ``friendships`` row per pair of members, whichever side asked first.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from magazine.database.models import Friendship, FriendshipStatus, User
from magazine.services import notification_service
from magazine.services.errors import Forbidden, InvalidRequest, NotFound
from magazine.services.serializers import iso

logger = logging.getLogger(__name__)


def _friend_summary(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
        "trophies": user.trophies,
        "level": user.level,
    }


def _find_pair(session: Session, a: str, b: str) -> Friendship | None:
    return session.scalar(
        select(Friendship).where(
            or_(
                and_(Friendship.requester_id == a, Friendship.addressee_id == b),
                and_(Friendship.requester_id == b, Friendship.addressee_id == a),
            )
        )
    )


def send_request(engine, requester_id: str, addressee_id: str) -> dict:
    """Ask *addressee_id* to be friends.

    A previously rejected pair is reopened as a fresh request from the
    caller, whichever side sent the original one.
    """
    if requester_id == addressee_id:
        raise InvalidRequest("Cannot add yourself")
    with Session(engine) as session:
        requester = session.get(User, requester_id)
        if requester is None:
            raise NotFound("User not found")
        if session.get(User, addressee_id) is None:
            raise NotFound("User not found")

        existing = _find_pair(session, requester_id, addressee_id)
        if existing is not None:
            if existing.status == FriendshipStatus.PENDING:
                raise InvalidRequest("Request already pending")
            if existing.status == FriendshipStatus.ACCEPTED:
                raise InvalidRequest("Already friends")
            existing.requester_id = requester_id
            existing.addressee_id = addressee_id
            existing.status = FriendshipStatus.PENDING.value
            friendship = existing
        else:
            friendship = Friendship(requester_id=requester_id, addressee_id=addressee_id)
            session.add(friendship)

        notification_service.notify_friend_request(session, addressee_id, requester)
        session.commit()
        logger.info("Friend request %s → %s", requester_id, addressee_id)
        return {"message": "Friend request sent", "requestId": friendship.id}


def _addressed_request(session: Session, request_id: str, user_id: str) -> Friendship:
    request = session.get(Friendship, request_id)
    if request is None:
        raise NotFound("Request not found")
    if request.addressee_id != user_id:
        raise Forbidden("Forbidden")
    return request


def accept_request(engine, request_id: str, user_id: str) -> dict:
    with Session(engine) as session:
        request = _addressed_request(session, request_id, user_id)
        if request.status != FriendshipStatus.PENDING:
            raise InvalidRequest("Request not pending")
        accepter = session.get(User, user_id)
        request.status = FriendshipStatus.ACCEPTED.value
        notification_service.notify_friend_accepted(session, request.requester_id, accepter)
        session.commit()
        return {"message": "Friend request accepted"}


def reject_request(engine, request_id: str, user_id: str) -> dict:
    with Session(engine) as session:
        request = _addressed_request(session, request_id, user_id)
        request.status = FriendshipStatus.REJECTED.value
        session.commit()
        return {"message": "Friend request rejected"}


def list_friends(engine, user_id: str) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Friendship)
            .where(
                Friendship.status == FriendshipStatus.ACCEPTED,
                or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
            )
            .options(selectinload(Friendship.requester), selectinload(Friendship.addressee))
        ).all()
        return [
            _friend_summary(f.addressee if f.requester_id == user_id else f.requester)
            for f in rows
        ]


def pending_requests(engine, user_id: str) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Friendship)
            .where(
                Friendship.addressee_id == user_id,
                Friendship.status == FriendshipStatus.PENDING,
            )
            .options(selectinload(Friendship.requester))
            .order_by(Friendship.created_at.desc())
        ).all()
        return [
            {
                "id": f.id,
                "requesterId": f.requester_id,
                "addresseeId": f.addressee_id,
                "status": f.status,
                "createdAt": iso(f.created_at),
                "requester": _friend_summary(f.requester),
            }
            for f in rows
        ]


def friendship_status(engine, user_id: str, target_id: str) -> dict:
    with Session(engine) as session:
        friendship = _find_pair(session, user_id, target_id)
        if friendship is None:
            return {"status": "NONE"}
        return {
            "status": friendship.status,
            "isRequester": friendship.requester_id == user_id,
            "requestId": friendship.id,
        }

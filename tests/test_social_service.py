"""
tests/test_social_service.py — Friend Graph & Notification Inbox Tests
=======================================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.database.models import Friendship, Notification, NotificationType
from magazine.services import notification_service, social_service
from magazine.services.errors import Forbidden, InvalidRequest, NotFound


def _inbox_types(engine, user_id: str) -> list[str]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Notification.type).where(Notification.user_id == user_id)
        ).all())


# ===========================================================================
# Friend requests
# ===========================================================================
class TestSendRequest:
    def test_creates_pending_and_notifies(self, db_engine, member_id, other_id):
        result = social_service.send_request(db_engine, member_id, other_id)

        assert result["message"] == "Friend request sent"
        assert _inbox_types(db_engine, other_id) == [NotificationType.FRIEND_REQUEST]
        status = social_service.friendship_status(db_engine, member_id, other_id)
        assert status == {"status": "PENDING", "isRequester": True, "requestId": result["requestId"]}

    def test_cannot_add_self(self, db_engine, member_id):
        with pytest.raises(InvalidRequest, match="Cannot add yourself"):
            social_service.send_request(db_engine, member_id, member_id)

    def test_unknown_target(self, db_engine, member_id):
        with pytest.raises(NotFound):
            social_service.send_request(db_engine, member_id, "missing")

    @pytest.mark.parametrize("reverse", [False, True])
    def test_duplicate_pending_in_either_direction(self, db_engine, member_id, other_id, reverse):
        social_service.send_request(db_engine, member_id, other_id)
        a, b = (other_id, member_id) if reverse else (member_id, other_id)
        with pytest.raises(InvalidRequest, match="Request already pending"):
            social_service.send_request(db_engine, a, b)

    def test_already_friends(self, db_engine, member_id, other_id):
        request_id = social_service.send_request(db_engine, member_id, other_id)["requestId"]
        social_service.accept_request(db_engine, request_id, other_id)
        with pytest.raises(InvalidRequest, match="Already friends"):
            social_service.send_request(db_engine, other_id, member_id)

    def test_rejected_pair_is_reopened_by_new_requester(self, db_engine, member_id, other_id):
        request_id = social_service.send_request(db_engine, member_id, other_id)["requestId"]
        social_service.reject_request(db_engine, request_id, other_id)

        result = social_service.send_request(db_engine, other_id, member_id)

        assert result["requestId"] == request_id
        with Session(db_engine) as session:
            row = session.get(Friendship, request_id)
            assert (row.requester_id, row.addressee_id, row.status) == (other_id, member_id, "PENDING")


class TestRespond:
    @pytest.fixture
    def request_id(self, db_engine, member_id, other_id) -> str:
        return social_service.send_request(db_engine, member_id, other_id)["requestId"]

    def test_accept_links_both_sides(self, db_engine, request_id, member_id, other_id):
        social_service.accept_request(db_engine, request_id, other_id)

        assert [f["id"] for f in social_service.list_friends(db_engine, member_id)] == [other_id]
        assert [f["id"] for f in social_service.list_friends(db_engine, other_id)] == [member_id]
        assert NotificationType.SYSTEM in _inbox_types(db_engine, member_id)

    def test_only_addressee_may_respond(self, db_engine, request_id, member_id):
        with pytest.raises(Forbidden):
            social_service.accept_request(db_engine, request_id, member_id)
        with pytest.raises(Forbidden):
            social_service.reject_request(db_engine, request_id, member_id)

    def test_accept_twice(self, db_engine, request_id, other_id):
        social_service.accept_request(db_engine, request_id, other_id)
        with pytest.raises(InvalidRequest, match="Request not pending"):
            social_service.accept_request(db_engine, request_id, other_id)

    def test_unknown_request(self, db_engine, other_id):
        with pytest.raises(NotFound, match="Request not found"):
            social_service.accept_request(db_engine, "missing", other_id)

    def test_pending_list_for_addressee(self, db_engine, request_id, member_id, other_id):
        pending = social_service.pending_requests(db_engine, other_id)
        assert [p["id"] for p in pending] == [request_id]
        assert pending[0]["requester"]["name"] == "Ana"
        assert social_service.pending_requests(db_engine, member_id) == []

    def test_status_from_addressee_side(self, db_engine, request_id, member_id, other_id):
        status = social_service.friendship_status(db_engine, other_id, member_id)
        assert status["isRequester"] is False

    def test_status_none(self, db_engine, member_id, other_id):
        assert social_service.friendship_status(db_engine, member_id, other_id) == {"status": "NONE"}


# ===========================================================================
# Notification inbox
# ===========================================================================
class TestInbox:
    @pytest.fixture
    def inbox(self, db_engine, member_id, other_id) -> list[dict]:
        social_service.send_request(db_engine, other_id, member_id)
        with Session(db_engine) as session:
            notification_service.notify(
                session, member_id, NotificationType.SYSTEM, "Manutenção às 22h",
            )
            session.commit()
        return notification_service.list_notifications(db_engine, member_id)

    def test_unread_count(self, db_engine, member_id, inbox):
        assert len(inbox) == 2
        assert notification_service.unread_count(db_engine, member_id) == 2

    def test_mark_one(self, db_engine, member_id, inbox):
        assert notification_service.mark_read(db_engine, member_id, inbox[0]["id"]) == 1
        assert notification_service.unread_count(db_engine, member_id) == 1

    def test_mark_all(self, db_engine, member_id, inbox):
        assert notification_service.mark_read(db_engine, member_id, "all") == 2
        assert notification_service.unread_count(db_engine, member_id) == 0

    def test_foreign_notification_is_hidden(self, db_engine, other_id, inbox):
        with pytest.raises(NotFound):
            notification_service.mark_read(db_engine, other_id, inbox[0]["id"])

    def test_actor_payload(self, inbox):
        request = next(n for n in inbox if n["type"] == NotificationType.FRIEND_REQUEST)
        assert request["data"]["actor"]["name"] == "Bruno"
        assert request["read"] is False

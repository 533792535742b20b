"""
tests/test_rate_limit.py — Request Throttling Tests
====================================================
Admin mutation endpoints are limited per admin, public invite requests
per client IP.  Exceeding a limit returns 429 with a Retry-After header.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.api import rate_limit as rl_mod
from magazine.api.rate_limit import ADMIN_BUCKET, INVITE_BUCKET, SlidingWindowRateLimiter
from magazine.database.models import RateLimitEvent, Role

from conftest import auth_headers, make_user


# ---------------------------------------------------------------------------
# Unit tests for the SlidingWindowRateLimiter core (DB-backed)
# ---------------------------------------------------------------------------
class TestSlidingWindowRateLimiter:
    """Test the sliding-window rate limiter in isolation (DB-backed)."""

    @pytest.fixture(autouse=True)
    def _limiter(self, db_engine):
        self.engine = db_engine
        self.limiter = SlidingWindowRateLimiter("test", 5, 60, engine=db_engine)

    def test_allows_requests_within_limit(self):
        for _ in range(5):
            allowed, _ = self.limiter.check("user1")
            assert allowed
            self.limiter.record("user1")

    def test_blocks_after_limit_exceeded(self):
        limiter = SlidingWindowRateLimiter("test", 3, 60, engine=self.engine)
        for _ in range(3):
            limiter.record("user1")

        allowed, info = limiter.check("user1")
        assert not allowed
        assert info["remaining"] == 0
        assert info["reset"] > 0

    def test_separate_subjects_have_separate_limits(self):
        limiter = SlidingWindowRateLimiter("test", 2, 60, engine=self.engine)
        limiter.record("user1")
        limiter.record("user1")

        assert not limiter.check("user1")[0]
        assert limiter.check("user2")[0]

    def test_buckets_do_not_share_counts(self):
        first = SlidingWindowRateLimiter("one", 1, 60, engine=self.engine)
        second = SlidingWindowRateLimiter("two", 1, 60, engine=self.engine)
        first.record("1.2.3.4")

        assert not first.check("1.2.3.4")[0]
        assert second.check("1.2.3.4")[0]

    def test_remaining_count_decreases(self):
        _, info = self.limiter.check("user1")
        assert info["remaining"] == 5

        self.limiter.record("user1")
        _, info = self.limiter.check("user1")
        assert info["remaining"] == 4

    def test_reset_clears_specific_subject(self):
        limiter = SlidingWindowRateLimiter("test", 2, 60, engine=self.engine)
        limiter.record("user1")
        limiter.record("user1")
        limiter.record("user2")

        limiter.reset("user1")

        assert limiter.check("user1")[0]
        _, info2 = limiter.check("user2")
        assert info2["remaining"] == 1

    def test_reset_all_only_touches_own_bucket(self):
        mine = SlidingWindowRateLimiter("mine", 2, 60, engine=self.engine)
        theirs = SlidingWindowRateLimiter("theirs", 2, 60, engine=self.engine)
        mine.record("user1")
        theirs.record("user1")

        mine.reset()

        with Session(self.engine) as session:
            buckets = session.scalars(select(RateLimitEvent.bucket)).all()
        assert buckets == ["theirs"]


class TestLimiterRegistry:
    def test_configure_registers_every_bucket(self, db_engine):
        rl_mod.configure_rate_limiter(engine=db_engine)
        assert rl_mod.get_rate_limiter(ADMIN_BUCKET).max_requests == 30
        assert rl_mod.get_rate_limiter(INVITE_BUCKET).window_seconds == 3600

    def test_unconfigured_bucket_raises(self, db_engine):
        rl_mod.configure_rate_limiter(engine=db_engine)
        with pytest.raises(RuntimeError, match="not configured"):
            rl_mod.get_rate_limiter("nope")


# ---------------------------------------------------------------------------
# Integration tests with FastAPI TestClient
# ---------------------------------------------------------------------------
class TestAdminThrottle:
    """The admin dependency end-to-end via TestClient."""

    @pytest.fixture
    def admins(self, db_engine):
        first = make_user(db_engine, name="Root", email="root@example.com", role=Role.ADMIN)
        second = make_user(db_engine, name="Ops", email="ops@example.com", role=Role.ADMIN)
        return first, second

    def _fill(self, subject: str) -> None:
        limiter = rl_mod.get_rate_limiter(ADMIN_BUCKET)
        for _ in range(limiter.max_requests):
            limiter.record(subject)

    def _put_setting(self, client, admin: str):
        return client.put(
            "/admin/settings",
            headers=auth_headers(admin, Role.ADMIN),
            json={"key": "economy.highlight_cost", "value": 250},
        )

    def test_get_requests_not_rate_limited(self, client, admins):
        admin, _ = admins
        self._fill(admin)
        for _ in range(5):
            resp = client.get("/admin/settings", headers=auth_headers(admin, Role.ADMIN))
            assert resp.status_code == 200

    def test_returns_429_after_limit(self, client, admins):
        admin, _ = admins
        self._fill(admin)

        resp = self._put_setting(client, admin)
        assert resp.status_code == 429
        body = resp.json()
        assert body["detail"]["error"] == "rate_limit_exceeded"
        assert "retry_after" in body["detail"]
        assert "Retry-After" in resp.headers

    def test_mutation_under_limit_is_recorded(self, client, admins):
        admin, _ = admins
        assert self._put_setting(client, admin).status_code == 200
        _, info = rl_mod.get_rate_limiter(ADMIN_BUCKET).check(admin)
        assert info["remaining"] == 29

    def test_different_admins_have_separate_limits(self, client, admins):
        first, second = admins
        self._fill(first)

        assert self._put_setting(client, first).status_code == 429
        assert self._put_setting(client, second).status_code == 200


class TestInviteThrottle:
    def test_sixth_invite_request_in_an_hour_is_rejected(self, client):
        for i in range(5):
            resp = client.post("/invites", json={"name": f"Guest {i}", "email": f"guest{i}@example.com"})
            assert resp.status_code == 201

        resp = client.post("/invites", json={"name": "Guest 6", "email": "guest6@example.com"})
        assert resp.status_code == 429
        assert "Retry-After" in resp.headers

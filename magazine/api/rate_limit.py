"""
magazine.api.rate_limit — Sliding-Window Request Throttles
===========================================================

Two throttles share one implementation:

* ``admin``  — 30 mutations per minute per admin (JWT ``sub``).
* ``invite`` — 5 public invite requests per hour per client IP.

State lives in the ``rate_limit_events`` table so limits survive
restarts and hold across worker processes.  Exceeding a limit returns
HTTP 429 with a ``Retry-After`` header.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from magazine.api.deps import get_current_admin
from magazine.database.models import RateLimitEvent

logger = logging.getLogger(__name__)

ADMIN_BUCKET = "admin"
INVITE_BUCKET = "invite"

# bucket → (max requests, window seconds)
DEFAULT_LIMITS: dict[str, tuple[int, int]] = {
    ADMIN_BUCKET: (30, 60),
    INVITE_BUCKET: (5, 3600),
}

# HTTP methods considered "mutations"
_MUTATION_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class SlidingWindowRateLimiter:
    """At most *max_requests* per *window_seconds* for each subject of a bucket.

    Each accepted request is one ``rate_limit_events`` row; rows older
    than the window are pruned whenever the subject is touched.
    """

    def __init__(
        self,
        bucket: str,
        max_requests: int,
        window_seconds: int,
        *,
        engine: Engine,
    ) -> None:
        self.bucket = bucket
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.engine = engine

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)

    def _subject_filter(self, subject: str):
        return (RateLimitEvent.bucket == self.bucket, RateLimitEvent.subject == subject)

    def _prune(self, session: Session, subject: str, now: datetime) -> None:
        session.execute(
            delete(RateLimitEvent).where(
                *self._subject_filter(subject),
                RateLimitEvent.timestamp < now - self.window,
            )
        )

    def _info(self, used: int, reset: int) -> dict[str, Any]:
        return {
            "remaining": max(0, self.max_requests - used),
            "reset": reset,
            "limit": self.max_requests,
        }

    def check(self, subject: str) -> tuple[bool, dict[str, Any]]:
        """Whether *subject* may make another request right now.

        ``info["reset"]`` is the number of seconds until a slot frees up
        when blocked, otherwise the full window length.
        """
        now = datetime.now(UTC)
        with Session(self.engine) as session:
            self._prune(session, subject, now)
            oldest = session.scalar(
                select(func.min(RateLimitEvent.timestamp)).where(*self._subject_filter(subject))
            )
            used = session.scalar(
                select(func.count()).select_from(RateLimitEvent).where(*self._subject_filter(subject))
            ) or 0
            session.commit()

        if used < self.max_requests:
            return True, self._info(used, self.window_seconds)

        if oldest.tzinfo is None:
            oldest = oldest.replace(tzinfo=UTC)
        seconds_left = (oldest + self.window - now).total_seconds()
        return False, self._info(used, max(1, int(seconds_left) + 1))

    def record(self, subject: str) -> dict[str, Any]:
        """Store one request for *subject*."""
        now = datetime.now(UTC)
        with Session(self.engine) as session:
            self._prune(session, subject, now)
            session.add(RateLimitEvent(bucket=self.bucket, subject=subject, timestamp=now))
            session.flush()
            used = session.scalar(
                select(func.count()).select_from(RateLimitEvent).where(*self._subject_filter(subject))
            ) or 0
            session.commit()
        return self._info(used, self.window_seconds)

    def reset(self, subject: str | None = None) -> None:
        """Forget *subject*, or everybody in this bucket when None."""
        stmt = delete(RateLimitEvent).where(RateLimitEvent.bucket == self.bucket)
        if subject is not None:
            stmt = stmt.where(RateLimitEvent.subject == subject)
        with Session(self.engine) as session:
            session.execute(stmt)
            session.commit()


# ---------------------------------------------------------------------------
# Module-level registry
# ---------------------------------------------------------------------------
_limiters: dict[str, SlidingWindowRateLimiter] = {}


def get_rate_limiter(bucket: str = ADMIN_BUCKET) -> SlidingWindowRateLimiter:
    """Return the configured limiter for *bucket*."""
    limiter = _limiters.get(bucket)
    if limiter is None:
        raise RuntimeError("Rate limiter not configured — call configure_rate_limiter() first")
    return limiter


def configure_rate_limiter(*, engine: Engine) -> None:
    """Configure every bucket to use durable DB-backed storage."""
    _limiters.clear()
    for bucket, (max_requests, window_seconds) in DEFAULT_LIMITS.items():
        _limiters[bucket] = SlidingWindowRateLimiter(
            bucket, max_requests, window_seconds, engine=engine,
        )


async def _enforce(limiter: SlidingWindowRateLimiter, subject: str, unit: str) -> None:
    allowed, info = await asyncio.to_thread(limiter.check, subject)
    if not allowed:
        logger.warning(
            "Rate limit exceeded [%s] for %s: %d requests per %ds",
            limiter.bucket, subject, limiter.max_requests, limiter.window_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Rate limit exceeded: {limiter.max_requests} {unit}.",
                "retry_after": info["reset"],
            },
            headers={"Retry-After": str(info["reset"])},
        )
    await asyncio.to_thread(limiter.record, subject)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
async def rate_limited_admin(
    request: Request,
    admin: dict = Depends(get_current_admin),
) -> dict:
    """Validate the admin *and* enforce per-admin mutation limits.

    GET/HEAD/OPTIONS requests pass through without rate-limit checks.
    Use ``Depends(rate_limited_admin)`` in place of
    ``Depends(get_current_admin)`` on admin write endpoints.
    """
    if request.method in _MUTATION_METHODS:
        await _enforce(get_rate_limiter(ADMIN_BUCKET), admin["sub"], "mutations per minute")
    return admin


async def rate_limited_invite(request: Request) -> None:
    """Throttle public invite requests per client IP."""
    client_ip = request.client.host if request.client else "unknown"
    await _enforce(get_rate_limiter(INVITE_BUCKET), client_ip, "invite requests per hour")

"""
magazine.engine.streak — Daily Login Streak Inference
======================================================

Streaks are not stored.  They are inferred from the set of calendar days
on which a member claimed the daily-login reward, walking backwards over
consecutive days.  Pure calculation; callers pass already-localized dates.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo


def local_day(moment: datetime, tz: ZoneInfo) -> date:
    """Calendar day of *moment* in *tz*.  Naive datetimes are read as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    return moment.astimezone(tz).date()


def count_streak(claim_days: Iterable[date], start: date, cap: int) -> int:
    """Count consecutive claimed days walking back from *start*, at most *cap*."""
    days = set(claim_days)
    streak = 0
    current = start
    while streak < cap and current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def streak_status(
    claim_days: Iterable[date], today: date, rewards: Sequence[int],
) -> dict:
    """Status of the daily-login streak as seen on *today*.

    Counting starts at *today* when it is claimed, otherwise at yesterday,
    so an unclaimed today does not break a streak that is still alive.

    Returns
    -------
    ``{"claimed", "streak", "nextReward", "rewards"}``
    """
    days = set(claim_days)
    claimed = today in days
    start = today if claimed else today - timedelta(days=1)
    streak = count_streak(days, start, len(rewards))
    next_reward = rewards[streak % len(rewards)] if rewards else 0
    return {
        "claimed": claimed,
        "streak": streak,
        "nextReward": next_reward,
        "rewards": list(rewards),
    }


def claim_amount(
    claim_days: Iterable[date], today: date, rewards: Sequence[int],
) -> tuple[int, int]:
    """Zions paid for claiming on *today* and the resulting streak length.

    The streak is counted from yesterday; the payout is
    ``rewards[streak % len(rewards)]`` and the new streak is ``streak + 1``.
    """
    if not rewards:
        return 0, 0
    streak = count_streak(claim_days, today - timedelta(days=1), len(rewards))
    return rewards[streak % len(rewards)], streak + 1

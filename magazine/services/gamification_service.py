"""
magazine.services.gamification_service — Ledger, Badges, Rewards & Streaks
===========================================================================

The session-level helpers (``award_zions``, ``spend_zions``, ``grant_xp``,
``check_badges``) run inside the caller's transaction so a post, a like or
a comment commits together with every balance movement it causes.  Each
balance change writes exactly one ``zion_history`` row.

The engine-level functions back the ``/gamification`` endpoints.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from magazine.constants import FIRST_STEPS_BADGE, RANKING_SIZE, level_for_xp
from magazine.database.models import (
    AdminActionType,
    Badge,
    Comment,
    LedgerKind,
    Like,
    Post,
    Redemption,
    Reward,
    RewardType,
    User,
    UserBadge,
    ZionHistory,
)
from magazine.engine import streak as streak_engine
from magazine.engine.badges import BadgeAction, BadgeContext
from magazine.engine.badges import check_badges as evaluate_badge_rules
from magazine.services import notification_service
from magazine.services.admin_service import log_admin_action, row_to_dict
from magazine.services.errors import InsufficientZions, InvalidRequest, NotFound
from magazine.services.serializers import ledger_dict, redemption_dict, reward_dict
from magazine.services.settings_service import Economy, load_economy

logger = logging.getLogger(__name__)


def _normalize_dt(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Zion ledger
# ---------------------------------------------------------------------------

def award_zions(
    session: Session,
    user: User,
    amount: int,
    *,
    kind: LedgerKind,
    reason: str,
    reference_id: str | None = None,
) -> ZionHistory | None:
    """Credit *amount* Zions and append the matching ledger row."""
    if amount <= 0:
        return None
    user.zions = (user.zions or 0) + amount
    row = ZionHistory(
        user_id=user.id, amount=amount, kind=kind.value,
        reason=reason, reference_id=reference_id,
    )
    session.add(row)
    logger.info("Awarded %d Zions to %s for %s", amount, user.id, reason)
    return row


def spend_zions(
    session: Session,
    user: User,
    amount: int,
    *,
    kind: LedgerKind,
    reason: str,
    reference_id: str | None = None,
) -> ZionHistory | None:
    """Debit *amount* Zions.  Raises :class:`InsufficientZions` on overdraft."""
    if amount <= 0:
        return None
    if (user.zions or 0) < amount:
        raise InsufficientZions()
    user.zions -= amount
    row = ZionHistory(
        user_id=user.id, amount=-amount, kind=kind.value,
        reason=reason, reference_id=reference_id,
    )
    session.add(row)
    logger.info("Debited %d Zions from %s for %s", amount, user.id, reason)
    return row


def has_ledger_entry(
    session: Session, user_id: str, kind: LedgerKind, reference_id: str,
) -> bool:
    return session.scalar(
        select(ZionHistory.id).where(
            ZionHistory.user_id == user_id,
            ZionHistory.kind == kind.value,
            ZionHistory.reference_id == reference_id,
        ).limit(1)
    ) is not None


# ---------------------------------------------------------------------------
# XP & levels
# ---------------------------------------------------------------------------

def grant_xp(session: Session, user: User, amount: int, economy: Economy) -> bool:
    """Add XP and raise the level while the curve allows.  True on level-up."""
    if amount <= 0:
        return False
    old_level = user.level or 1
    user.xp = (user.xp or 0) + amount
    user.level = level_for_xp(
        user.xp, old_level, economy.level_base, economy.level_factor,
    )
    if user.level > old_level:
        logger.info("User %s leveled up %d → %d", user.id, old_level, user.level)
        return True
    return False


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------

def _badge_dict(badge: Badge) -> dict:
    return {
        "id": badge.id,
        "name": badge.name,
        "description": badge.description,
        "iconUrl": badge.icon_url,
        "trophies": badge.trophies,
    }


def _earned_badge_names(session: Session, user_id: str) -> set[str]:
    return set(session.scalars(
        select(Badge.name)
        .join(UserBadge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user_id)
    ).all())


def _build_context(session: Session, user_id: str, action: BadgeAction) -> BadgeContext:
    posts = session.scalar(
        select(func.count()).select_from(Post).where(Post.user_id == user_id)
    ) or 0
    comments = session.scalar(
        select(func.count()).select_from(Comment).where(Comment.user_id == user_id)
    ) or 0
    likes_given = session.scalar(
        select(func.count()).select_from(Like).where(Like.user_id == user_id)
    ) or 0
    likes_received = session.scalar(
        select(func.coalesce(func.sum(Post.likes_count), 0)).where(Post.user_id == user_id)
    ) or 0
    return BadgeContext(
        action=action,
        posts_count=posts,
        comments_count=comments,
        likes_given=likes_given,
        likes_received=likes_received,
    )


def award_badge(session: Session, user: User, badge: Badge) -> dict:
    """Grant *badge*: user_badges row, trophies, BADGE notification."""
    session.add(UserBadge(user_id=user.id, badge_id=badge.id))
    user.trophies = (user.trophies or 0) + (badge.trophies or 0)
    notification_service.notify_badge(session, user.id, badge.name, badge.trophies or 0)
    logger.info("Badge %r awarded to %s (+%d trophies)", badge.name, user.id, badge.trophies)
    return _badge_dict(badge)


def _award_by_names(session: Session, user: User, names: list[str]) -> list[dict]:
    awarded: list[dict] = []
    for name in names:
        badge = session.scalar(select(Badge).where(Badge.name == name))
        if badge is None:
            logger.warning("Badge %r is not in the catalogue; skipping", name)
            continue
        awarded.append(award_badge(session, user, badge))
    return awarded


def check_badges(session: Session, user: User, action: BadgeAction) -> list[dict]:
    """Evaluate the badge rules for *action* and award what newly unlocked.

    Flushes first so the counts include rows added earlier in the same
    transaction.
    """
    session.flush()
    ctx = _build_context(session, user.id, action)
    names = evaluate_badge_rules(ctx, _earned_badge_names(session, user.id))
    return _award_by_names(session, user, names)


def ensure_first_steps(session: Session, user: User) -> list[dict]:
    """Award "Primeiros Passos" if the member does not hold it yet."""
    if FIRST_STEPS_BADGE in _earned_badge_names(session, user.id):
        return []
    return _award_by_names(session, user, [FIRST_STEPS_BADGE])


# ---------------------------------------------------------------------------
# Ranking & badge catalogue
# ---------------------------------------------------------------------------

def get_ranking(engine, limit: int = RANKING_SIZE) -> list[dict]:
    """Top members by trophies.  ``points`` mirrors trophies for the client."""
    with Session(engine) as session:
        users = session.scalars(
            select(User).order_by(User.trophies.desc(), User.created_at).limit(limit)
        ).all()
        return [
            {
                "id": u.id,
                "name": u.name,
                "displayName": u.display_name,
                "avatarUrl": u.avatar_url,
                "trophies": u.trophies,
                "points": u.trophies,
                "level": u.level,
                "membershipType": u.membership_type,
            }
            for u in users
        ]


def list_badges(engine, user_id: str) -> list[dict]:
    """Whole badge catalogue with ``isEarned`` for *user_id*.

    Also self-heals older accounts that predate the first-login badge.
    """
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        if ensure_first_steps(session, user):
            session.commit()

        earned = _earned_badge_names(session, user_id)
        badges = session.scalars(
            select(Badge).order_by(Badge.trophies, Badge.name)
        ).all()
        return [
            {**_badge_dict(b), "isEarned": b.name in earned}
            for b in badges
        ]


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

def list_rewards(engine) -> list[dict]:
    """In-stock rewards, cheapest first."""
    with Session(engine) as session:
        rewards = session.scalars(
            select(Reward).where(Reward.stock > 0).order_by(Reward.cost_zions, Reward.title)
        ).all()
        return [reward_dict(r) for r in rewards]


def create_reward(
    engine,
    *,
    title: str,
    reward_type: str,
    cost_zions: int,
    stock: int,
    metadata: dict[str, Any] | None,
    actor_id: str,
) -> dict:
    if reward_type not in {t.value for t in RewardType}:
        raise InvalidRequest(f"Invalid reward type: {reward_type}")
    with Session(engine) as session:
        reward = Reward(
            title=title,
            type=reward_type,
            cost_zions=cost_zions,
            stock=stock,
            metadata_=metadata,
        )
        session.add(reward)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table="rewards",
            target_id=reward.id,
            before=None,
            after=row_to_dict(reward),
        )
        session.commit()
        return reward_dict(reward)


def delete_reward(engine, reward_id: str, *, actor_id: str) -> None:
    """Delete a reward; its redemptions go with it."""
    with Session(engine) as session:
        reward = session.get(Reward, reward_id)
        if reward is None:
            raise NotFound("Reward not found")
        before = row_to_dict(reward)
        session.delete(reward)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="rewards",
            target_id=reward_id,
            before=before,
            after=None,
        )
        session.commit()


def ticket_code(reward: Reward, when: datetime) -> str:
    """``TKT-YYYYMMDD-XXXX-COST`` where XXXX is the reward id prefix."""
    return f"TKT-{when:%Y%m%d}-{reward.id[:4].upper()}-{reward.cost_zions}"


def redeem_reward(engine, user_id: str, reward_id: str, *, now: datetime | None = None) -> dict:
    """Spend Zions on a reward.

    Checks run in order: reward exists, in stock, balance, cooldown.  The
    debit, the stock decrement and the redemption row commit together.
    """
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        user = session.get(User, user_id, with_for_update=True)
        reward = session.get(Reward, reward_id, with_for_update=True)
        if user is None or reward is None:
            raise NotFound("User or Reward not found")
        if reward.stock <= 0:
            raise InvalidRequest("Reward out of stock")
        if user.zions < reward.cost_zions:
            raise InsufficientZions()

        economy = load_economy(session)
        cooldown = timedelta(minutes=economy.redemption_cooldown_minutes)
        last = session.scalar(
            select(Redemption.redeemed_at)
            .where(Redemption.user_id == user_id)
            .order_by(Redemption.redeemed_at.desc())
            .limit(1)
        )
        if last is not None:
            elapsed = now - _normalize_dt(last)
            if elapsed < cooldown:
                minutes_left = math.ceil((cooldown - elapsed).total_seconds() / 60)
                raise InvalidRequest(
                    f"Aguarde {minutes_left} minutos para resgatar outra recompensa."
                )

        code = ticket_code(reward, now)
        spend_zions(
            session, user, reward.cost_zions,
            kind=LedgerKind.REDEMPTION,
            reason=f"Redeemed reward: {reward.title}",
            reference_id=reward.id,
        )
        reward.stock -= 1
        redemption = Redemption(
            user_id=user_id,
            reward_id=reward.id,
            cost=reward.cost_zions,
            code=code,
            redeemed_at=now,
        )
        session.add(redemption)
        session.commit()
        logger.info("User %s redeemed %r (%s)", user_id, reward.title, code)
        return {
            "success": True,
            "message": "Reward redeemed successfully",
            "code": {"code": code},
            "reward": reward_dict(reward),
        }


def my_redemptions(engine, user_id: str) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Redemption)
            .where(Redemption.user_id == user_id)
            .options(selectinload(Redemption.reward))
            .order_by(Redemption.redeemed_at.desc())
        ).all()
        return [redemption_dict(r) for r in rows]


def all_redemptions(engine) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Redemption)
            .options(selectinload(Redemption.reward), selectinload(Redemption.user))
            .order_by(Redemption.redeemed_at.desc())
        ).all()
        return [redemption_dict(r, include_user=True) for r in rows]


def zion_history(engine, user_id: str, limit: int = 50) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(ZionHistory)
            .where(ZionHistory.user_id == user_id)
            .order_by(ZionHistory.created_at.desc(), ZionHistory.id.desc())
            .limit(limit)
        ).all()
        return [ledger_dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Daily login
# ---------------------------------------------------------------------------

def _claim_days(session: Session, user_id: str, economy: Economy, now: datetime) -> set:
    # Only the window the streak can reach matters
    since = now - timedelta(days=len(economy.daily_login_rewards) + 2)
    stamps = session.scalars(
        select(ZionHistory.created_at).where(
            ZionHistory.user_id == user_id,
            ZionHistory.kind == LedgerKind.DAILY_LOGIN,
            ZionHistory.created_at >= since,
        )
    ).all()
    return {streak_engine.local_day(ts, economy.tz) for ts in stamps}


def daily_login_status(engine, user_id: str, *, now: datetime | None = None) -> dict:
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        economy = load_economy(session)
        today = streak_engine.local_day(now, economy.tz)
        days = _claim_days(session, user_id, economy, now)
        return streak_engine.streak_status(days, today, economy.daily_login_rewards)


def claim_daily_login(engine, user_id: str, *, now: datetime | None = None) -> dict:
    """Pay today's streak reward, once per calendar day."""
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        user = session.get(User, user_id, with_for_update=True)
        if user is None:
            raise NotFound("User not found")
        economy = load_economy(session)
        today = streak_engine.local_day(now, economy.tz)
        days = _claim_days(session, user_id, economy, now)
        if today in days:
            return {"message": "Daily login already claimed", "claimed": True}

        amount, streak = streak_engine.claim_amount(days, today, economy.daily_login_rewards)
        row = award_zions(
            session, user, amount,
            kind=LedgerKind.DAILY_LOGIN,
            reason=f"Daily Login (Day {streak})",
        )
        if row is not None:
            row.created_at = now
        session.commit()
        return {
            "message": "Daily login claimed",
            "claimed": False,
            "awarded": amount,
            "streak": streak,
        }

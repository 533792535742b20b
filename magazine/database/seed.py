"""
magazine.database.seed — Default Catalogue Seeder
==================================================

Baseline rows seeded on first startup so a fresh install is immediately
usable: the economy settings, the badge catalogue and a few starter
rewards.

Idempotent — only inserts rows that don't already exist.  Values changed
later by admins are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from magazine import constants
from magazine.database.engine import get_session
from magazine.database.models import Badge, Reward, RewardType, Setting

logger = logging.getLogger(__name__)

BADGE_ICON_URL = "https://cdn-icons-png.flaticon.com/512/3112/3112946.png"


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "economy.zions_per_post": (
        constants.ZIONS_PER_POST, "economy", "Zions awarded for publishing a post",
    ),
    "economy.zions_per_like": (
        constants.ZIONS_PER_LIKE, "economy", "Zions awarded the first time a member likes a post",
    ),
    "economy.zions_per_comment": (
        constants.ZIONS_PER_COMMENT, "economy", "Zions awarded for commenting",
    ),
    "economy.xp_per_post": (constants.XP_PER_POST, "economy", "XP awarded for publishing a post"),
    "economy.xp_per_comment_received": (
        constants.XP_PER_COMMENT_RECEIVED, "economy",
        "XP awarded to a post author when someone else comments",
    ),
    "economy.highlight_cost": (
        constants.HIGHLIGHT_COST, "economy", "Zions charged to highlight a post (admins are exempt)",
    ),
    "economy.redemption_cooldown_minutes": (
        constants.REDEMPTION_COOLDOWN_MINUTES, "economy",
        "Minutes a member must wait between reward redemptions",
    ),
    "daily_login.rewards": (
        list(constants.DAILY_LOGIN_REWARDS), "daily_login",
        "Zions paid per day of a login streak (cycles after the last entry)",
    ),
    "daily_login.timezone": (
        "UTC", "daily_login", "IANA timezone that defines the daily-login day boundary",
    ),
    "leveling.level_base": (constants.LEVEL_BASE, "leveling", "XP needed to leave level 0"),
    "leveling.level_factor": (
        constants.LEVEL_FACTOR, "leveling", "Growth factor of the XP curve per level",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Badge catalogue — (name, description, trophies)
# ---------------------------------------------------------------------------
DEFAULT_BADGES: list[tuple[str, str, int]] = [
    (constants.FIRST_STEPS_BADGE, "Entrou no clube pela primeira vez", 50),
    ("Primeira Voz", "Fez a primeira postagem", 100),
    ("Criador de Conteúdo", "Fez 5 postagens", 200),
    ("Socialite", "Fez 10 comentários", 50),
    ("Engajado", "Deu 50 likes", 50),
    ("Influenciador", "Recebeu 50 likes", 500),
]


# ---------------------------------------------------------------------------
# Starter rewards — (title, type, cost_zions, stock, metadata)
# ---------------------------------------------------------------------------
DEFAULT_REWARDS: list[tuple[str, RewardType, int, int, dict]] = [
    ("Cupom 10% OFF", RewardType.COUPON, 50, 100, {"code": "MAGAZINE10"}),
    ("Frete Grátis", RewardType.COUPON, 30, 50, {"code": "FRETEFREE"}),
    (
        "Wallpaper Exclusivo", RewardType.DIGITAL, 10, 999,
        {"url": "https://example.com/wallpaper.jpg"},
    ),
]


# ---------------------------------------------------------------------------
# Seeders
# ---------------------------------------------------------------------------
def seed_default_settings(session: Session) -> int:
    """Insert default settings that don't yet exist.  Returns rows added."""
    inserted = 0
    for key, (value, category, desc) in DEFAULT_SETTINGS.items():
        if session.get(Setting, key) is None:
            session.add(Setting(
                key=key,
                value_json=json.dumps(value),
                category=category,
                description=desc,
            ))
            inserted += 1
    return inserted


def seed_badges(session: Session) -> int:
    existing = set(session.scalars(select(Badge.name)).all())
    inserted = 0
    for name, description, trophies in DEFAULT_BADGES:
        if name in existing:
            continue
        session.add(Badge(
            name=name,
            description=description,
            icon_url=BADGE_ICON_URL,
            trophies=trophies,
        ))
        inserted += 1
    return inserted


def seed_rewards(session: Session) -> int:
    """Seed starter rewards, but only into an empty catalogue.

    Admins may delete a starter reward on purpose; re-creating it on the
    next restart would undo that.
    """
    if session.scalar(select(Reward.id).limit(1)) is not None:
        return 0
    for title, reward_type, cost, stock, metadata in DEFAULT_REWARDS:
        session.add(Reward(
            title=title,
            type=reward_type.value,
            cost_zions=cost,
            stock=stock,
            metadata_=metadata,
        ))
    return len(DEFAULT_REWARDS)


def seed_all(engine: Engine) -> None:
    """Run every seeder in one transaction.

    Runs on every startup but only writes rows that are missing, so it is
    safe to call repeatedly.
    """
    with get_session(engine) as session:
        settings = seed_default_settings(session)
        badges = seed_badges(session)
        rewards = seed_rewards(session)

    if settings or badges or rewards:
        logger.info(
            "Seeded %d settings, %d badges, %d rewards.", settings, badges, rewards,
        )

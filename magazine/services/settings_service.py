"""
magazine.services.settings_service — Settings CRUD & Economy Snapshot
======================================================================

Provides typed read/write access to the ``settings`` table.  Services
that award or charge Zions read one :class:`Economy` snapshot per
transaction through :func:`load_economy`, so a single operation never
mixes values from before and after an admin edit.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine import constants
from magazine.database.models import AdminActionType, Setting
from magazine.services.admin_service import log_admin_action
from magazine.services.errors import InvalidRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_setting_value(session: Session, key: str, default=None):
    """Read a single setting's parsed value from an existing session.

    Parameters
    ----------
    session : Session
        An open SQLAlchemy session.
    key : str
        The setting key to look up.
    default
        Returned when the key does not exist or the stored JSON is invalid.

    Returns
    -------
    The JSON-decoded value, or *default*.
    """
    row = session.get(Setting, key)
    if row is None:
        return default
    try:
        return json.loads(row.value_json)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Setting %s holds invalid JSON; using default", key)
        return default


def _setting_dict(row: Setting) -> dict:
    try:
        value = json.loads(row.value_json)
    except (json.JSONDecodeError, TypeError):
        value = row.value_json
    return {
        "key": row.key,
        "value": value,
        "category": row.category,
        "description": row.description,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


def get_all_settings(engine) -> list[dict]:
    """Fetch every setting, ordered by category then key."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Setting).order_by(Setting.category, Setting.key)
        ).all()
        return [_setting_dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Economy snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Economy:
    zions_per_post: int = constants.ZIONS_PER_POST
    zions_per_like: int = constants.ZIONS_PER_LIKE
    zions_per_comment: int = constants.ZIONS_PER_COMMENT
    xp_per_post: int = constants.XP_PER_POST
    xp_per_comment_received: int = constants.XP_PER_COMMENT_RECEIVED
    highlight_cost: int = constants.HIGHLIGHT_COST
    redemption_cooldown_minutes: int = constants.REDEMPTION_COOLDOWN_MINUTES
    daily_login_rewards: tuple[int, ...] = tuple(constants.DAILY_LOGIN_REWARDS)
    timezone: str = "UTC"
    level_base: int = constants.LEVEL_BASE
    level_factor: float = constants.LEVEL_FACTOR

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown daily_login.timezone %r; using UTC", self.timezone)
            return ZoneInfo("UTC")


def load_economy(session: Session) -> Economy:
    """Read every economy knob in one pass, falling back to defaults."""
    defaults = Economy()

    def _int(key: str, fallback: int) -> int:
        value = get_setting_value(session, key, fallback)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Setting %s is not an integer: %r", key, value)
            return fallback

    rewards = get_setting_value(session, "daily_login.rewards", None)
    if (
        not isinstance(rewards, list)
        or not rewards
        or not all(isinstance(r, int) for r in rewards)
    ):
        rewards = list(defaults.daily_login_rewards)

    factor = get_setting_value(session, "leveling.level_factor", defaults.level_factor)
    try:
        factor = float(factor)
    except (TypeError, ValueError):
        factor = defaults.level_factor

    return Economy(
        zions_per_post=_int("economy.zions_per_post", defaults.zions_per_post),
        zions_per_like=_int("economy.zions_per_like", defaults.zions_per_like),
        zions_per_comment=_int("economy.zions_per_comment", defaults.zions_per_comment),
        xp_per_post=_int("economy.xp_per_post", defaults.xp_per_post),
        xp_per_comment_received=_int(
            "economy.xp_per_comment_received", defaults.xp_per_comment_received,
        ),
        highlight_cost=_int("economy.highlight_cost", defaults.highlight_cost),
        redemption_cooldown_minutes=_int(
            "economy.redemption_cooldown_minutes", defaults.redemption_cooldown_minutes,
        ),
        daily_login_rewards=tuple(rewards),
        timezone=str(get_setting_value(session, "daily_login.timezone", defaults.timezone)),
        level_base=_int("leveling.level_base", defaults.level_base),
        level_factor=factor,
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def upsert_setting(
    engine,
    *,
    key: str,
    value: Any,
    category: str | None = None,
    description: str | None = None,
    actor_id: str | None = None,
) -> dict:
    """Insert or update a single setting, audited when *actor_id* is given."""
    key = key.strip()
    if not key:
        raise InvalidRequest("Setting key is required")
    if key == "daily_login.timezone":
        try:
            ZoneInfo(str(value))
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidRequest(f"Unknown timezone: {value}")
    if key == "daily_login.rewards" and (
        not isinstance(value, list)
        or not value
        or not all(isinstance(v, int) and v >= 0 for v in value)
    ):
        raise InvalidRequest("daily_login.rewards must be a non-empty list of integers")

    value_json = json.dumps(value)
    with Session(engine) as session:
        existing = session.get(Setting, key)
        before = _snapshot(existing) if existing else None

        if existing:
            existing.value_json = value_json
            if category:
                existing.category = category
            if description is not None:
                existing.description = description
        else:
            existing = Setting(
                key=key,
                value_json=value_json,
                category=category or "general",
                description=description,
            )
            session.add(existing)

        after = _snapshot(existing)
        if actor_id is not None and before != after:
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.UPDATE if before else AdminActionType.CREATE,
                target_table="settings",
                target_id=key,
                before=before,
                after=after,
            )
        session.commit()
        logger.info("Setting %s updated → %s", key, value_json)
        return _setting_dict(existing)


def _snapshot(row: Setting) -> dict:
    return {
        "key": row.key,
        "value": json.loads(row.value_json) if row.value_json else None,
        "category": row.category,
        "description": row.description,
    }

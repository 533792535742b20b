"""
magazine.engine.badges — Badge Rule Registry
=============================================

Handler-registry evaluation of badge unlocks.  Each rule names the badge it
awards, the member actions that re-evaluate it, and a pure handler that
receives a :class:`BadgeContext` plus the rule's config.

Thresholds are crossing rules (``count >= value``): a member who jumps past
a threshold in a single step still earns the badge, and the caller's
``already_earned`` set guarantees each badge is granted at most once.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from magazine.constants import FIRST_STEPS_BADGE

logger = logging.getLogger(__name__)


class BadgeAction(enum.StrEnum):
    """Member actions after which badge rules are evaluated."""
    LOGIN = "LOGIN"
    POST = "POST"
    COMMENT = "COMMENT"
    LIKE = "LIKE"


# ---------------------------------------------------------------------------
# Badge Context — passed to every rule handler
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BadgeContext:
    """Snapshot of member activity counts after the triggering action.

    Parameters
    ----------
    action : The action that just happened.
    posts_count : Posts authored by the member.
    comments_count : Comments written by the member.
    likes_given : Likes the member currently has on other posts.
    likes_received : Sum of ``likes_count`` over the member's posts.
    """

    action: BadgeAction
    posts_count: int = 0
    comments_count: int = 0
    likes_given: int = 0
    likes_received: int = 0


# ---------------------------------------------------------------------------
# Rule handlers — pure functions (config, ctx) → bool
# ---------------------------------------------------------------------------

def _check_always(config: dict, ctx: BadgeContext) -> bool:
    return True


def _check_count_threshold(config: dict, ctx: BadgeContext) -> bool:
    """Fires when a context counter reaches a threshold.

    Config: {"field": "posts_count", "value": 5}
    """
    field_name = config.get("field", "")
    value = config.get("value")
    if value is None or not hasattr(ctx, field_name):
        return False
    return getattr(ctx, field_name) >= value


@dataclass(frozen=True, slots=True)
class BadgeRule:
    badge_name: str
    actions: frozenset[BadgeAction]
    handler: Callable[[dict, BadgeContext], bool]
    config: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------
BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule(
        FIRST_STEPS_BADGE,
        frozenset({BadgeAction.LOGIN}),
        _check_always,
    ),
    BadgeRule(
        "Primeira Voz",
        frozenset({BadgeAction.POST}),
        _check_count_threshold,
        {"field": "posts_count", "value": 1},
    ),
    BadgeRule(
        "Criador de Conteúdo",
        frozenset({BadgeAction.POST}),
        _check_count_threshold,
        {"field": "posts_count", "value": 5},
    ),
    BadgeRule(
        "Socialite",
        frozenset({BadgeAction.COMMENT}),
        _check_count_threshold,
        {"field": "comments_count", "value": 10},
    ),
    BadgeRule(
        "Engajado",
        frozenset({BadgeAction.LIKE}),
        _check_count_threshold,
        {"field": "likes_given", "value": 50},
    ),
    BadgeRule(
        "Influenciador",
        frozenset({BadgeAction.LOGIN, BadgeAction.POST}),
        _check_count_threshold,
        {"field": "likes_received", "value": 50},
    ),
)


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def check_badges(
    ctx: BadgeContext,
    already_earned: set[str],
    rules: tuple[BadgeRule, ...] = BADGE_RULES,
) -> list[str]:
    """Return the names of badges newly unlocked by *ctx*.

    Parameters
    ----------
    ctx : BadgeContext with the member's counts after the action.
    already_earned : Names of badges the member already holds.
    rules : Rule registry to evaluate (defaults to :data:`BADGE_RULES`).

    Returns
    -------
    Badge names in registry order.
    """
    newly_earned: list[str] = []
    for rule in rules:
        if ctx.action not in rule.actions:
            continue
        if rule.badge_name in already_earned:
            continue
        if rule.handler(rule.config, ctx):
            newly_earned.append(rule.badge_name)
            logger.debug("Badge rule fired: %s on %s", rule.badge_name, ctx.action)
    return newly_earned

"""
magazine.constants — Shared Constants & Helpers
================================================

Single source of truth for the leveling formula and the built-in economy
defaults.  The defaults seed the ``settings`` table; services read the
live values through :mod:`magazine.services.settings_service`.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Economy defaults (seeded into ``settings``)
# ---------------------------------------------------------------------------
ZIONS_PER_POST = 1
ZIONS_PER_LIKE = 1
ZIONS_PER_COMMENT = 2
XP_PER_POST = 10
XP_PER_COMMENT_RECEIVED = 20
HIGHLIGHT_COST = 300
REDEMPTION_COOLDOWN_MINUTES = 60

# Day N of a streak pays DAILY_LOGIN_REWARDS[(N - 1) % 7]
DAILY_LOGIN_REWARDS: list[int] = [5, 10, 15, 20, 25, 30, 50]

LEVEL_BASE = 100
LEVEL_FACTOR = 1.25

# ---------------------------------------------------------------------------
# Badge names referenced by code paths outside the rule registry
# ---------------------------------------------------------------------------
FIRST_STEPS_BADGE = "Primeiros Passos"

# Ranking page size
RANKING_SIZE = 10


# ---------------------------------------------------------------------------
# Leveling formula
# ---------------------------------------------------------------------------
def xp_for_level(level: int, base: int = LEVEL_BASE, factor: float = LEVEL_FACTOR) -> int:
    """XP required to advance past *level*.

    Uses the exponential formula::

        required = base * (factor ** level)
    """
    return int(base * (factor ** level))


def level_for_xp(
    xp: int, level: int = 1, base: int = LEVEL_BASE, factor: float = LEVEL_FACTOR,
) -> int:
    """Return the level reached with *xp*, never lower than *level*.

    A flat or shrinking curve (``factor <= 1``) never terminates, so such
    settings leave the level unchanged.
    """
    if base <= 0 or factor <= 1:
        return level
    while xp >= xp_for_level(level, base, factor):
        level += 1
    return level

"""
tests/test_badges.py — Badge Rule Registry Tests
=================================================
Pure-function tests for magazine.engine.badges.
"""

from __future__ import annotations

import pytest

from magazine.constants import FIRST_STEPS_BADGE
from magazine.engine.badges import (
    BADGE_RULES,
    BadgeAction,
    BadgeContext,
    BadgeRule,
    _check_count_threshold,
    check_badges,
)


# ===========================================================================
# Handlers
# ===========================================================================
class TestCountThreshold:
    def test_fires_at_threshold(self):
        ctx = BadgeContext(BadgeAction.POST, posts_count=5)
        assert _check_count_threshold({"field": "posts_count", "value": 5}, ctx)

    def test_fires_past_threshold(self):
        ctx = BadgeContext(BadgeAction.POST, posts_count=9)
        assert _check_count_threshold({"field": "posts_count", "value": 5}, ctx)

    def test_below_threshold(self):
        ctx = BadgeContext(BadgeAction.POST, posts_count=4)
        assert not _check_count_threshold({"field": "posts_count", "value": 5}, ctx)

    @pytest.mark.parametrize("config", [{}, {"field": "posts_count"}, {"field": "nope", "value": 1}])
    def test_incomplete_config_never_fires(self, config):
        ctx = BadgeContext(BadgeAction.POST, posts_count=100)
        assert not _check_count_threshold(config, ctx)


# ===========================================================================
# Registry evaluation
# ===========================================================================
class TestCheckBadges:
    def test_login_awards_first_steps(self):
        assert check_badges(BadgeContext(BadgeAction.LOGIN), set()) == [FIRST_STEPS_BADGE]

    def test_already_earned_is_skipped(self):
        assert check_badges(BadgeContext(BadgeAction.LOGIN), {FIRST_STEPS_BADGE}) == []

    def test_first_post_awards_first_voice(self):
        assert check_badges(BadgeContext(BadgeAction.POST, posts_count=1), set()) == ["Primeira Voz"]

    def test_fifth_post_awards_content_creator(self):
        ctx = BadgeContext(BadgeAction.POST, posts_count=5)
        assert check_badges(ctx, {"Primeira Voz"}) == ["Criador de Conteúdo"]

    def test_jumping_past_threshold_awards_everything_crossed(self):
        ctx = BadgeContext(BadgeAction.POST, posts_count=7)
        assert check_badges(ctx, set()) == ["Primeira Voz", "Criador de Conteúdo"]

    def test_rules_only_run_for_their_actions(self):
        ctx = BadgeContext(BadgeAction.COMMENT, posts_count=10, likes_received=100)
        assert check_badges(ctx, set()) == []

    def test_tenth_comment_awards_socialite(self):
        ctx = BadgeContext(BadgeAction.COMMENT, comments_count=10)
        assert check_badges(ctx, set()) == ["Socialite"]

    def test_fiftieth_like_given_awards_engaged(self):
        assert check_badges(BadgeContext(BadgeAction.LIKE, likes_given=49), set()) == []
        assert check_badges(BadgeContext(BadgeAction.LIKE, likes_given=50), set()) == ["Engajado"]

    @pytest.mark.parametrize("action", [BadgeAction.LOGIN, BadgeAction.POST])
    def test_influencer_checked_on_login_and_post(self, action):
        ctx = BadgeContext(action, likes_received=50)
        earned = {FIRST_STEPS_BADGE, "Primeira Voz"}
        assert check_badges(ctx, earned) == ["Influenciador"]

    def test_custom_registry(self):
        rule = BadgeRule(
            "Tagarela",
            frozenset({BadgeAction.COMMENT}),
            _check_count_threshold,
            {"field": "comments_count", "value": 1},
        )
        ctx = BadgeContext(BadgeAction.COMMENT, comments_count=1)
        assert check_badges(ctx, set(), rules=(rule,)) == ["Tagarela"]

    def test_registry_names_are_unique(self):
        names = [rule.badge_name for rule in BADGE_RULES]
        assert len(names) == len(set(names))

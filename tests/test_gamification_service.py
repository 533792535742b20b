"""
tests/test_gamification_service.py — Ledger, Rewards & Daily Login Tests
=========================================================================
Service-level tests against the in-memory SQLite engine from conftest.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from magazine.constants import FIRST_STEPS_BADGE
from magazine.database.models import (
    AdminLog,
    LedgerKind,
    Notification,
    NotificationType,
    Reward,
    User,
    ZionHistory,
)
from magazine.services import gamification_service, settings_service
from magazine.services.errors import InsufficientZions, InvalidRequest, NotFound

from conftest import make_user

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _reward_id(engine, title: str) -> str:
    with Session(engine) as session:
        return session.scalar(select(Reward.id).where(Reward.title == title))


def _user(engine, user_id: str) -> User:
    with Session(engine) as session:
        user = session.get(User, user_id)
        session.expunge(user)
        return user


def _ledger(engine, user_id: str) -> list[ZionHistory]:
    with Session(engine) as session:
        rows = session.scalars(
            select(ZionHistory).where(ZionHistory.user_id == user_id).order_by(ZionHistory.id)
        ).all()
        session.expunge_all()
        return list(rows)


# ===========================================================================
# Ledger primitives
# ===========================================================================
class TestLedger:
    def test_award_writes_one_row(self, db_engine, member_id):
        with Session(db_engine) as session:
            user = session.get(User, member_id)
            gamification_service.award_zions(
                session, user, 7, kind=LedgerKind.ADMIN, reason="Gift",
            )
            session.commit()

        assert _user(db_engine, member_id).zions == 7
        rows = _ledger(db_engine, member_id)
        assert [(r.amount, r.kind, r.reason) for r in rows] == [(7, "ADMIN", "Gift")]

    def test_zero_award_is_noop(self, db_engine, member_id):
        with Session(db_engine) as session:
            user = session.get(User, member_id)
            assert gamification_service.award_zions(
                session, user, 0, kind=LedgerKind.ADMIN, reason="Nothing",
            ) is None
            session.commit()
        assert _ledger(db_engine, member_id) == []

    def test_spend_rejects_overdraft(self, db_engine):
        user_id = make_user(db_engine, name="Poor", zions=3)
        with Session(db_engine) as session:
            user = session.get(User, user_id)
            with pytest.raises(InsufficientZions, match="Insufficient Zions"):
                gamification_service.spend_zions(
                    session, user, 5, kind=LedgerKind.HIGHLIGHT, reason="Too much",
                )
        assert _user(db_engine, user_id).zions == 3

    def test_spend_writes_negative_row(self, db_engine):
        user_id = make_user(db_engine, name="Rich", zions=10)
        with Session(db_engine) as session:
            user = session.get(User, user_id)
            gamification_service.spend_zions(
                session, user, 4, kind=LedgerKind.HIGHLIGHT, reason="Highlight Post Cost",
            )
            session.commit()
        assert _user(db_engine, user_id).zions == 6
        assert _ledger(db_engine, user_id)[0].amount == -4


class TestGrantXp:
    def test_level_up_when_threshold_crossed(self, db_engine, member_id):
        with Session(db_engine) as session:
            user = session.get(User, member_id)
            economy = settings_service.load_economy(session)
            assert gamification_service.grant_xp(session, user, 200, economy)
            assert user.level > 1

    def test_small_grant_keeps_level(self, db_engine, member_id):
        with Session(db_engine) as session:
            user = session.get(User, member_id)
            economy = settings_service.load_economy(session)
            assert not gamification_service.grant_xp(session, user, 10, economy)
            assert user.xp == 10
            assert user.level == 1


# ===========================================================================
# Badges & ranking
# ===========================================================================
class TestBadgeCatalogue:
    def test_list_badges_self_heals_first_steps(self, db_engine, member_id):
        badges = gamification_service.list_badges(db_engine, member_id)

        earned = [b["name"] for b in badges if b["isEarned"]]
        assert earned == [FIRST_STEPS_BADGE]
        assert _user(db_engine, member_id).trophies == 50

        with Session(db_engine) as session:
            note = session.scalar(
                select(Notification).where(Notification.user_id == member_id)
            )
        assert note.type == NotificationType.BADGE
        assert FIRST_STEPS_BADGE in note.content

    def test_first_steps_is_granted_once(self, db_engine, member_id):
        gamification_service.list_badges(db_engine, member_id)
        gamification_service.list_badges(db_engine, member_id)
        assert _user(db_engine, member_id).trophies == 50

    def test_unknown_user(self, db_engine):
        with pytest.raises(NotFound):
            gamification_service.list_badges(db_engine, "missing")


class TestRanking:
    def test_ordered_by_trophies_and_capped(self, db_engine):
        for i in range(12):
            make_user(db_engine, name=f"Member {i}", trophies=i * 10)

        ranking = gamification_service.get_ranking(db_engine)
        assert len(ranking) == 10
        assert ranking[0]["name"] == "Member 11"
        assert ranking[0]["points"] == ranking[0]["trophies"] == 110
        trophies = [r["trophies"] for r in ranking]
        assert trophies == sorted(trophies, reverse=True)


# ===========================================================================
# Rewards
# ===========================================================================
class TestRewards:
    def test_catalogue_hides_out_of_stock(self, db_engine):
        with Session(db_engine) as session:
            reward = session.scalar(select(Reward).where(Reward.title == "Frete Grátis"))
            reward.stock = 0
            session.commit()

        titles = [r["title"] for r in gamification_service.list_rewards(db_engine)]
        assert "Frete Grátis" not in titles
        assert titles == ["Wallpaper Exclusivo", "Cupom 10% OFF"]

    def test_create_reward_is_audited(self, db_engine, admin_id):
        reward = gamification_service.create_reward(
            db_engine, title="Caneca", reward_type="PHYSICAL", cost_zions=80,
            stock=3, metadata=None, actor_id=admin_id,
        )
        assert reward["costZions"] == 80
        with Session(db_engine) as session:
            log = session.scalar(select(AdminLog).where(AdminLog.target_id == reward["id"]))
        assert log.action_type == "CREATE"
        assert log.after_snapshot["title"] == "Caneca"

    def test_create_reward_rejects_unknown_type(self, db_engine, admin_id):
        with pytest.raises(InvalidRequest):
            gamification_service.create_reward(
                db_engine, title="X", reward_type="NFT", cost_zions=1,
                stock=1, metadata=None, actor_id=admin_id,
            )

    def test_delete_reward(self, db_engine, admin_id):
        reward_id = _reward_id(db_engine, "Frete Grátis")
        gamification_service.delete_reward(db_engine, reward_id, actor_id=admin_id)
        with pytest.raises(NotFound, match="Reward not found"):
            gamification_service.delete_reward(db_engine, reward_id, actor_id=admin_id)


class TestRedeem:
    @pytest.fixture
    def coupon_id(self, db_engine) -> str:
        return _reward_id(db_engine, "Cupom 10% OFF")

    def test_success_debits_and_issues_code(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=100)

        result = gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)

        assert result["success"] is True
        assert result["message"] == "Reward redeemed successfully"
        code = result["code"]["code"]
        assert code == f"TKT-20260310-{coupon_id[:4].upper()}-50"
        assert result["reward"]["stock"] == 99
        assert _user(db_engine, user_id).zions == 50
        ledger = _ledger(db_engine, user_id)
        assert [(r.amount, r.kind) for r in ledger] == [(-50, "REDEMPTION")]

        mine = gamification_service.my_redemptions(db_engine, user_id)
        assert mine[0]["code"] == code
        assert mine[0]["reward"]["title"] == "Cupom 10% OFF"

    def test_cooldown_blocks_second_redemption(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=100)
        gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)

        with pytest.raises(InvalidRequest) as exc_info:
            gamification_service.redeem_reward(
                db_engine, user_id, coupon_id, now=NOW + timedelta(minutes=30),
            )
        assert exc_info.value.message == "Aguarde 30 minutos para resgatar outra recompensa."
        assert _user(db_engine, user_id).zions == 50

    def test_partial_minutes_round_up(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=100)
        gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)

        with pytest.raises(InvalidRequest, match="Aguarde 1 minutos"):
            gamification_service.redeem_reward(
                db_engine, user_id, coupon_id, now=NOW + timedelta(minutes=59, seconds=30),
            )

    def test_redeem_allowed_after_cooldown(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=100)
        gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)
        gamification_service.redeem_reward(
            db_engine, user_id, coupon_id, now=NOW + timedelta(minutes=61),
        )
        assert _user(db_engine, user_id).zions == 0

    def test_insufficient_balance(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=10)
        with pytest.raises(InsufficientZions):
            gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)
        assert gamification_service.my_redemptions(db_engine, user_id) == []

    def test_out_of_stock_checked_before_balance(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=0)
        with Session(db_engine) as session:
            session.get(Reward, coupon_id).stock = 0
            session.commit()
        with pytest.raises(InvalidRequest, match="Reward out of stock"):
            gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)

    def test_unknown_reward(self, db_engine, member_id):
        with pytest.raises(NotFound, match="User or Reward not found"):
            gamification_service.redeem_reward(db_engine, member_id, "missing", now=NOW)

    def test_admin_listing_includes_user(self, db_engine, coupon_id):
        user_id = make_user(db_engine, name="Buyer", zions=100)
        gamification_service.redeem_reward(db_engine, user_id, coupon_id, now=NOW)
        rows = gamification_service.all_redemptions(db_engine)
        assert rows[0]["user"]["name"] == "Buyer"


# ===========================================================================
# Daily login
# ===========================================================================
class TestDailyLogin:
    def test_first_claim(self, db_engine, member_id):
        result = gamification_service.claim_daily_login(db_engine, member_id, now=NOW)

        assert result == {
            "message": "Daily login claimed",
            "claimed": False,
            "awarded": 5,
            "streak": 1,
        }
        assert _user(db_engine, member_id).zions == 5
        assert _ledger(db_engine, member_id)[0].reason == "Daily Login (Day 1)"

    def test_second_claim_same_day(self, db_engine, member_id):
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW)
        result = gamification_service.claim_daily_login(
            db_engine, member_id, now=NOW + timedelta(hours=6),
        )
        assert result == {"message": "Daily login already claimed", "claimed": True}
        assert _user(db_engine, member_id).zions == 5

    def test_consecutive_days_grow_streak(self, db_engine, member_id):
        for day in range(3):
            result = gamification_service.claim_daily_login(
                db_engine, member_id, now=NOW + timedelta(days=day),
            )
        assert result["streak"] == 3
        assert result["awarded"] == 15
        assert _user(db_engine, member_id).zions == 5 + 10 + 15

    def test_missed_day_restarts_schedule(self, db_engine, member_id):
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW)
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW + timedelta(days=1))
        result = gamification_service.claim_daily_login(
            db_engine, member_id, now=NOW + timedelta(days=3),
        )
        assert result["streak"] == 1
        assert result["awarded"] == 5

    def test_status_reflects_claim(self, db_engine, member_id):
        before = gamification_service.daily_login_status(db_engine, member_id, now=NOW)
        assert before["claimed"] is False
        assert before["nextReward"] == 5

        gamification_service.claim_daily_login(db_engine, member_id, now=NOW)
        after = gamification_service.daily_login_status(db_engine, member_id, now=NOW)
        assert after["claimed"] is True
        assert after["streak"] == 1
        assert after["nextReward"] == 10

    def test_day_boundary_follows_configured_timezone(self, db_engine, member_id):
        settings_service.upsert_setting(
            db_engine, key="daily_login.timezone", value="America/Sao_Paulo",
        )
        # 22:00 on the 9th and 01:00 on the 10th, São Paulo time
        first = datetime(2026, 3, 10, 1, 0, tzinfo=UTC)
        second = datetime(2026, 3, 10, 4, 0, tzinfo=UTC)

        gamification_service.claim_daily_login(db_engine, member_id, now=first)
        result = gamification_service.claim_daily_login(db_engine, member_id, now=second)
        assert result["claimed"] is False
        assert result["streak"] == 2

    def test_custom_reward_schedule(self, db_engine, member_id):
        settings_service.upsert_setting(db_engine, key="daily_login.rewards", value=[3, 4])
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW)
        second = gamification_service.claim_daily_login(
            db_engine, member_id, now=NOW + timedelta(days=1),
        )
        assert second["awarded"] == 4


class TestZionHistory:
    def test_newest_first(self, db_engine, member_id):
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW - timedelta(days=1))
        gamification_service.claim_daily_login(db_engine, member_id, now=NOW)

        history = gamification_service.zion_history(db_engine, member_id)
        assert [h["amount"] for h in history] == [10, 5]
        assert history[0]["kind"] == LedgerKind.DAILY_LOGIN

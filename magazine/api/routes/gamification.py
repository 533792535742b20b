"""
magazine.api.routes.gamification — Ranking, badges, rewards & daily login
==========================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from magazine.api.deps import get_current_user, get_engine
from magazine.api.rate_limit import rate_limited_admin
from magazine.database.models import RewardType
from magazine.services import gamification_service

router = APIRouter(prefix="/gamification", tags=["gamification"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RewardCreate(_CamelModel):
    title: str = Field(min_length=1)
    type: RewardType = RewardType.COUPON
    cost_zions: int = Field(ge=0)
    stock: int = Field(ge=0)
    metadata: dict[str, Any] | None = None


class RedeemBody(_CamelModel):
    reward_id: str


# ---------------------------------------------------------------------------
# Ranking & badges
# ---------------------------------------------------------------------------
@router.get("/ranking")
def ranking(engine=Depends(get_engine)):
    return gamification_service.get_ranking(engine)


@router.get("/badges")
def badges(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return gamification_service.list_badges(engine, user["sub"])


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------
@router.get("/rewards")
def list_rewards(engine=Depends(get_engine)):
    return gamification_service.list_rewards(engine)


@router.post("/rewards", status_code=201)
def create_reward(
    body: RewardCreate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    return gamification_service.create_reward(
        engine,
        title=body.title,
        reward_type=body.type.value,
        cost_zions=body.cost_zions,
        stock=body.stock,
        metadata=body.metadata,
        actor_id=admin["sub"],
    )


@router.post("/rewards/redeem")
def redeem(
    body: RedeemBody,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return gamification_service.redeem_reward(engine, user["sub"], body.reward_id)


@router.get("/rewards/my")
def my_redemptions(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return gamification_service.my_redemptions(engine, user["sub"])


@router.delete("/rewards/{reward_id}")
def delete_reward(
    reward_id: str,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    gamification_service.delete_reward(engine, reward_id, actor_id=admin["sub"])
    return {"message": "Reward deleted successfully"}


# ---------------------------------------------------------------------------
# Zion ledger
# ---------------------------------------------------------------------------
@router.get("/zions/history")
def zion_history(
    limit: int = Query(50, ge=1, le=200),
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return gamification_service.zion_history(engine, user["sub"], limit)


# ---------------------------------------------------------------------------
# Daily login
# ---------------------------------------------------------------------------
@router.get("/daily-login/status")
def daily_login_status(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return gamification_service.daily_login_status(engine, user["sub"])


@router.post("/daily-login")
def claim_daily_login(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return gamification_service.claim_daily_login(engine, user["sub"])

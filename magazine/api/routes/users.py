"""
magazine.api.routes.users — Profiles & member administration
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from magazine.api.deps import (
    get_current_admin,
    get_current_user,
    get_engine,
    get_optional_user,
    is_admin,
)
from magazine.api.rate_limit import rate_limited_admin
from magazine.services import gamification_service, user_service

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProfileUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    display_name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = None

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if len(v.strip()) < 2:
            raise ValueError("name must be at least 2 characters")
        return v


class MembershipUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    membership_type: str


# ---------------------------------------------------------------------------
# Caller
# ---------------------------------------------------------------------------
@router.get("/me")
def get_me(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return user_service.get_me(engine, user["sub"])


@router.put("/me")
def update_me(
    body: ProfileUpdate,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    fields = body.model_dump(exclude_unset=True)
    return user_service.update_me(engine, user["sub"], **fields)


@router.get("/me/redemptions")
def my_redemptions(user: dict = Depends(get_current_user), engine=Depends(get_engine)):
    return gamification_service.my_redemptions(engine, user["sub"])


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------
@router.get("")
def list_users(user: dict | None = Depends(get_optional_user), engine=Depends(get_engine)):
    return user_service.list_users(engine, include_private=is_admin(user))


@router.get("/redemptions")
def all_redemptions(admin: dict = Depends(get_current_admin), engine=Depends(get_engine)):
    return gamification_service.all_redemptions(engine)


# ---------------------------------------------------------------------------
# Single member
# ---------------------------------------------------------------------------
@router.get("/{user_id}")
def get_profile(user_id: str, engine=Depends(get_engine)):
    return user_service.get_profile(engine, user_id)


@router.get("/{user_id}/posts")
def user_posts(
    user_id: str,
    user: dict | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    return user_service.user_posts(engine, user_id, user["sub"] if user else None)


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    user_service.delete_user(engine, user_id, actor_id=admin["sub"])
    return {"message": "User deleted successfully"}


@router.post("/{user_id}/reset-password")
def reset_password(
    user_id: str,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    password = user_service.reset_user_password(engine, user_id, actor_id=admin["sub"])
    return {"message": "Password reset successfully", "generatedPassword": password}


@router.put("/{user_id}/membership")
def set_membership(
    user_id: str,
    body: MembershipUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    return user_service.set_membership(
        engine, user_id, body.membership_type, actor_id=admin["sub"],
    )

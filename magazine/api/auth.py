"""
magazine.api.auth — Email/password auth + JWT issuance
=======================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from magazine.api.deps import create_access_token, get_config, get_current_user, get_engine
from magazine.config import MagazineConfig
from magazine.database.engine import run_db
from magazine.database.models import MembershipType
from magazine.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If the email exists, a reset link has been sent."


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterBody(_CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=2)
    membership_type: MembershipType = MembershipType.MAGAZINE


class LoginBody(_CamelModel):
    email: EmailStr
    password: str


class ResetRequestBody(_CamelModel):
    email: EmailStr


class ResetPasswordBody(_CamelModel):
    token: str
    new_password: str = Field(min_length=6)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/register", status_code=201)
async def register(
    body: RegisterBody,
    cfg: MagazineConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    user = await run_db(
        auth_service.register,
        engine,
        email=body.email,
        password=body.password,
        name=body.name,
        membership_type=body.membership_type.value,
    )
    token = create_access_token(user["id"], user["role"], cfg.jwt_expiry_days)
    return {
        "token": token,
        "user": {
            "id": user["id"],
            "name": user["name"],
            "email": user["email"],
            "role": user["role"],
            "membershipType": user["membershipType"],
        },
    }


@router.post("/login")
async def login(
    body: LoginBody,
    cfg: MagazineConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    user = await run_db(
        auth_service.authenticate, engine, email=body.email, password=body.password,
    )
    token = create_access_token(user["id"], user["role"], cfg.jwt_expiry_days)
    return {"token": token, "user": user}


@router.post("/request-reset")
async def request_reset(
    body: ResetRequestBody,
    cfg: MagazineConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Same answer whether or not the account exists."""
    token = await run_db(auth_service.request_password_reset, engine, body.email)
    response: dict = {"message": RESET_REQUESTED_MESSAGE}
    if token and cfg.expose_reset_tokens:
        response["demoToken"] = token
    return response


@router.post("/reset-password")
async def reset_password(body: ResetPasswordBody, engine=Depends(get_engine)):
    await run_db(
        auth_service.reset_password,
        engine,
        token=body.token,
        new_password=body.new_password,
    )
    return {"message": "Password has been reset successfully"}


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    """Return the caller's JWT claims."""
    return user

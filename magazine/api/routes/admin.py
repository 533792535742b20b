"""
magazine.api.routes.admin — Audit log, settings & metrics (admin only)
=======================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from magazine.api.deps import get_current_admin, get_engine
from magazine.api.rate_limit import rate_limited_admin
from magazine.services import admin_service, settings_service

router = APIRouter(prefix="/admin", tags=["admin"])


class SettingUpdate(BaseModel):
    key: str
    value: Any
    category: str | None = None
    description: str | None = None


@router.get("/audit")
def audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return admin_service.list_audit_log(engine, page=page, page_size=page_size)


@router.get("/settings")
def list_settings(admin: dict = Depends(get_current_admin), engine=Depends(get_engine)):
    return {"settings": settings_service.get_all_settings(engine)}


@router.put("/settings")
def update_setting(
    body: SettingUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    return settings_service.upsert_setting(
        engine,
        key=body.key,
        value=body.value,
        category=body.category,
        description=body.description,
        actor_id=admin["sub"],
    )


@router.get("/metrics")
def metrics(admin: dict = Depends(get_current_admin), engine=Depends(get_engine)):
    return admin_service.get_metrics(engine)

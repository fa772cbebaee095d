from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from edrlink.apps.api.deps import acronis_client, get_current_user
from edrlink.domain.models import User
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.stats import get_acronis_stats
from edrlink.services.security.tenants import check_tenant_status


router = APIRouter(prefix="/api/security", tags=["stats"])


class StatsResponse(BaseModel):
    stats: dict[str, Any]
    recentIncidents: list[dict[str, Any]]
    endpoints: list[dict[str, Any]]


class TenantStatusResponse(BaseModel):
    enabled: bool
    status: str


@router.get("/stats", response_model=StatsResponse)
async def security_stats(
    user: User = Depends(get_current_user),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    return await get_acronis_stats(client, tenant_id=user.acronis_tenant_id)


@router.get("/tenant/status", response_model=TenantStatusResponse)
async def tenant_status(
    user: User = Depends(get_current_user),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not user.acronis_tenant_id:
        return {"enabled": False, "status": "inactive"}
    return await check_tenant_status(client, user.acronis_tenant_id)

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from edrlink.apps.api.deps import bitdefender_client, get_current_user
from edrlink.apps.api.errors import bad_request
from edrlink.core.config import get_settings
from edrlink.domain.models import User
from edrlink.providers.bitdefender.client import BitdefenderClient
from edrlink.services.security.endpoints import create_bitdefender_endpoint, list_bitdefender_endpoints
from edrlink.services.security.stats import get_bitdefender_stats


router = APIRouter(prefix="/api/security/bitdefender", tags=["bitdefender"])


class BitdefenderEndpointRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    os: str = Field(default="windows", max_length=32)


class BitdefenderStatsResponse(BaseModel):
    stats: dict[str, Any]
    recentIncidents: list[dict[str, Any]]


class ConfigCheckResponse(BaseModel):
    isConfigured: bool
    config: dict[str, Any]
    issues: list[str]


@router.get("/endpoints")
async def get_endpoints(
    user: User = Depends(get_current_user),
    client: BitdefenderClient = Depends(bitdefender_client),
) -> dict:
    return await list_bitdefender_endpoints(client)


@router.post("/endpoints")
async def post_endpoint(
    payload: BitdefenderEndpointRequest,
    user: User = Depends(get_current_user),
    client: BitdefenderClient = Depends(bitdefender_client),
) -> dict:
    if not payload.name:
        raise bad_request("Name is required")
    endpoint = await create_bitdefender_endpoint(client, payload.name, payload.os)
    return {"success": True, "endpoint": endpoint}


@router.get("/stats", response_model=BitdefenderStatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    client: BitdefenderClient = Depends(bitdefender_client),
) -> dict:
    return await get_bitdefender_stats(client)


@router.get("/check-config", response_model=ConfigCheckResponse)
async def check_config(user: User = Depends(get_current_user)) -> dict:
    # Report presence and length only; credentials never leave the process.
    settings = get_settings()
    api_key = settings.bitdefender_api_key or ""
    company_id = settings.bitdefender_company_id or ""
    base_url = settings.bitdefender_api_url or ""
    config = {
        "hasApiKey": bool(api_key),
        "hasCompanyId": bool(company_id),
        "hasBaseUrl": bool(base_url),
        "baseUrl": base_url,
        "apiKeyLength": len(api_key),
        "companyIdLength": len(company_id),
    }
    issues = []
    if not api_key:
        issues.append("BITDEFENDER_API_KEY não está configurado")
    if not company_id:
        issues.append("BITDEFENDER_COMPANY_ID não está configurado")
    if not base_url:
        issues.append("BITDEFENDER_API_URL não está configurado")
    return {"isConfigured": not issues, "config": config, "issues": issues}

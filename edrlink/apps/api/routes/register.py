from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.apps.api.deps import acronis_client, get_current_user, get_db
from edrlink.apps.api.errors import bad_request
from edrlink.domain.models import User
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.tenants import register_tenant


router = APIRouter(prefix="/api/security", tags=["register"])


class RegisterStatusResponse(BaseModel):
    isRegistered: bool


class RegisterRequest(BaseModel):
    companyName: str | None = Field(default=None, max_length=255)
    # Older dashboard builds post the company name as "name".
    name: str | None = Field(default=None, max_length=255)


class RegisterResponse(BaseModel):
    success: bool
    tenant: dict[str, Any]
    message: str


@router.get("/register", response_model=RegisterStatusResponse)
async def registration_status(user: User = Depends(get_current_user)) -> dict:
    return {"isRegistered": bool(user.acronis_tenant_id)}


@router.post("/register", response_model=RegisterResponse)
async def register(
    payload: RegisterRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    company_name = (payload.companyName or payload.name or "").strip()
    if not company_name:
        raise bad_request("Nome da empresa é obrigatório")
    return await register_tenant(db, client, user, company_name)

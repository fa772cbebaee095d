from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.apps.api.deps import get_current_user, get_db
from edrlink.apps.api.errors import bad_request
from edrlink.domain.models import User
from edrlink.services.security.activation import (
    advance_activation,
    generate_installer,
    get_activation_status,
    get_installer_status,
)


router = APIRouter(prefix="/api/security", tags=["activation"])


class ActivationRequest(BaseModel):
    step: str | None = None
    action: str | None = None


class ActivationResponse(BaseModel):
    currentStep: str
    installerDownloaded: bool
    deviceInstalled: bool
    emailVerified: bool
    wizardCompleted: bool


class InstallerRequest(BaseModel):
    os: str = Field(default="windows", max_length=32)


class InstallerStatusResponse(BaseModel):
    activationStatus: dict[str, Any] | None
    installer: dict[str, Any] | None


@router.get("/activation", response_model=ActivationResponse)
async def activation_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await get_activation_status(db, user)


@router.post("/activation", response_model=ActivationResponse)
async def update_activation(
    payload: ActivationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not payload.step or not payload.action:
        raise bad_request("Step e action são obrigatórios")
    return await advance_activation(db, user, step=payload.step, action=payload.action)


@router.get("/installer", response_model=InstallerStatusResponse)
async def installer_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await get_installer_status(db, user)


@router.post("/installer")
async def create_installer(
    payload: InstallerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    installer = await generate_installer(db, user, payload.os)
    return {"success": True, "installer": installer}

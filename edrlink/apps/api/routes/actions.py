from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.apps.api.deps import acronis_client, get_current_user, get_db
from edrlink.apps.api.errors import bad_request
from edrlink.domain.models import User
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.actions import dispatch_action


router = APIRouter(prefix="/api/security", tags=["actions"])


class ActionRequest(BaseModel):
    action: str | None = None
    deviceId: str | None = None


class ActionResult(BaseModel):
    success: bool
    message: str
    taskId: Any = None


@router.post("/actions", response_model=ActionResult)
async def run_action(
    payload: ActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not payload.action:
        raise bad_request("Ação não especificada")
    if not payload.deviceId:
        raise bad_request("ID do dispositivo é obrigatório")
    return await dispatch_action(
        db,
        client,
        user_id=user.id,
        action=payload.action,
        device_id=payload.deviceId,
    )

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.apps.api.deps import acronis_client, get_current_user, get_db
from edrlink.apps.api.errors import bad_request
from edrlink.domain.models import User
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.isolation import (
    get_isolation_status,
    list_security_actions,
    set_isolation,
)


router = APIRouter(prefix="/api/security", tags=["isolation"])


class IsolationRequest(BaseModel):
    deviceId: str | None = None
    action: str | None = None
    reason: str | None = Field(default=None, max_length=2000)


class IsolationResult(BaseModel):
    success: bool
    message: str
    taskId: Any = None


class IsolationHistoryResponse(BaseModel):
    items: list[dict[str, Any]]


@router.get("/isolation")
async def isolation_status(
    device_id: str | None = Query(default=None, alias="deviceId"),
    user: User = Depends(get_current_user),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not device_id:
        raise bad_request("ID do dispositivo é obrigatório")
    return await get_isolation_status(client, device_id)


@router.post("/isolation", response_model=IsolationResult)
async def change_isolation(
    payload: IsolationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not payload.deviceId or not payload.action:
        raise bad_request("ID do dispositivo e ação são obrigatórios")
    return await set_isolation(
        db,
        client,
        user_id=user.id,
        device_id=payload.deviceId,
        action=payload.action,
        reason=payload.reason,
    )


@router.get("/isolation/history", response_model=IsolationHistoryResponse)
async def isolation_history(
    device_id: str | None = Query(default=None, alias="deviceId"),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    items = await list_security_actions(db, user_id=user.id, device_id=device_id, limit=limit)
    return {"items": items}

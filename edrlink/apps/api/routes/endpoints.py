from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.apps.api.deps import acronis_client, get_current_user, get_db
from edrlink.apps.api.errors import bad_request
from edrlink.domain.models import User
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.endpoints import create_endpoint, delete_endpoint, list_endpoints


router = APIRouter(prefix="/api/security", tags=["endpoints"])


class EndpointCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    os: str = Field(default="windows", max_length=32)


class EndpointListResponse(BaseModel):
    endpoints: list[dict[str, Any]]
    limits: dict[str, Any]


class EndpointCreateResponse(BaseModel):
    message: str
    endpoint: dict[str, Any]


class MessageResponse(BaseModel):
    message: str


@router.get("/endpoints", response_model=EndpointListResponse)
async def get_endpoints(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    return await list_endpoints(db, client, user)


@router.post("/endpoints", response_model=EndpointCreateResponse)
async def post_endpoint(
    payload: EndpointCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not payload.name:
        raise bad_request("Nome do endpoint é obrigatório")
    endpoint = await create_endpoint(db, client, user, payload.name, payload.os)
    return {"message": "Endpoint registrado com sucesso", "endpoint": endpoint}


@router.delete("/endpoints", response_model=MessageResponse)
async def remove_endpoint(
    endpoint_id: str | None = Query(default=None, alias="id"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: AcronisClient = Depends(acronis_client),
) -> dict:
    if not endpoint_id:
        raise bad_request("ID do endpoint é obrigatório")
    await delete_endpoint(db, client, user, endpoint_id)
    return {"message": "Endpoint removido com sucesso"}

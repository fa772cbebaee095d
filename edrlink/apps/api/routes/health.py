from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from edrlink.services.telemetry import availability, external_call_summary


router = APIRouter(tags=["health"])

HEALTH_WINDOW_S = 300


class HealthResponse(BaseModel):
    status: str


class IntegrationHealthResponse(BaseModel):
    window_s: int
    availability: float | None
    integrations: dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health() -> dict:
    return {"status": "ok"}


@router.get("/health/integrations", response_model=IntegrationHealthResponse)
async def integration_health() -> dict:
    # In-process counters only; a restart resets the window.
    return {
        "window_s": HEALTH_WINDOW_S,
        "availability": availability(HEALTH_WINDOW_S),
        "integrations": external_call_summary(HEALTH_WINDOW_S),
    }

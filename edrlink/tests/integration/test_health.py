from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from edrlink.apps.api.main import create_app
from edrlink.services.telemetry import record_external_call


@pytest.mark.asyncio
async def test_health_is_public_and_tagged_with_request_id() -> None:
    async with AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as client:
        response = await client.get("/health", headers={"X-Request-Id": "req-123"})
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-Id"] == "req-123"


@pytest.mark.asyncio
async def test_integration_health_summarizes_vendor_calls() -> None:
    record_external_call(integration="acronis", latency_ms=12.0, success=True)
    record_external_call(integration="acronis", latency_ms=40.0, success=False)
    async with AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as client:
        await client.get("/health")
        response = await client.get("/health/integrations")

    body = response.json()
    assert body["integrations"]["acronis"]["calls"] == 2
    assert body["integrations"]["acronis"]["failures"] == 1
    assert body["availability"] == 100.0

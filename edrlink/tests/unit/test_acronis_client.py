from __future__ import annotations

import httpx
import pytest

from edrlink.core.config import get_settings
from edrlink.core.errors import ProviderConfigError, VendorRequestError
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.telemetry import external_call_summary


def _client(handler, **settings_overrides) -> AcronisClient:
    settings = get_settings().model_copy(update=settings_overrides)
    return AcronisClient(settings=settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _token_or(response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == acronis.AUTH:
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        return response

    return handler


@pytest.mark.asyncio
async def test_request_sends_bearer_token_and_json() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == acronis.AUTH:
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        seen.append(request)
        return httpx.Response(200, json={"items": []})

    client = _client(handler)
    result = await client.request(acronis.AGENTS, "GET", params={"tenant_id": "t-1"})

    assert result == {"items": []}
    assert seen[0].headers["authorization"] == "Bearer tok"
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].url.params["tenant_id"] == "t-1"
    await client.aclose()


@pytest.mark.asyncio
async def test_non_2xx_raises_with_vendor_status_and_body() -> None:
    client = _client(_token_or(httpx.Response(503, text="maintenance window")))

    with pytest.raises(VendorRequestError) as exc_info:
        await client.request(acronis.ALERTS, "GET")

    error = exc_info.value
    assert error.vendor_status == 503
    assert error.body == "maintenance window"
    assert "503 - maintenance window" in error.message
    # Vendor failures surface as 500 to dashboard callers.
    assert error.status_code == 500
    await client.aclose()


@pytest.mark.asyncio
async def test_redirect_is_not_treated_as_success() -> None:
    # Redirects are not followed, so a 3xx is a failed call.
    client = _client(_token_or(httpx.Response(302, headers={"Location": "https://login.acronis.test/"})))

    with pytest.raises(VendorRequestError) as exc_info:
        await client.request(acronis.AGENTS, "GET")
    assert exc_info.value.vendor_status == 302
    await client.aclose()


@pytest.mark.asyncio
async def test_redirected_token_request_raises_vendor_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://login.acronis.test/"})

    client = _client(handler)
    with pytest.raises(VendorRequestError) as exc_info:
        await client.get_token()
    assert exc_info.value.vendor_status == 302
    await client.aclose()


@pytest.mark.asyncio
async def test_empty_response_body_returns_empty_dict() -> None:
    client = _client(_token_or(httpx.Response(204)))
    assert await client.request(acronis.ENDPOINT_UNREGISTER.format(agent_id="a-1"), "POST") == {}
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_credentials_fail_on_first_token_request() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    # Construction succeeds; the error appears lazily.
    client = _client(handler, acronis_client_id=None)
    with pytest.raises(ProviderConfigError):
        await client.request(acronis.AGENTS, "GET")
    assert calls == []
    await client.aclose()


@pytest.mark.asyncio
async def test_token_rejection_raises_vendor_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="invalid_client")

    client = _client(handler)
    with pytest.raises(VendorRequestError) as exc_info:
        await client.get_token()
    assert exc_info.value.message.startswith("Failed to get Acronis token")
    assert exc_info.value.vendor_status == 401
    await client.aclose()


@pytest.mark.asyncio
async def test_vendor_calls_are_recorded_in_telemetry() -> None:
    client = _client(_token_or(httpx.Response(500, text="boom")))
    with pytest.raises(VendorRequestError):
        await client.request(acronis.AGENTS, "GET")

    summary = external_call_summary(60)["acronis"]
    assert summary["calls"] == 2
    assert summary["failures"] == 1
    await client.aclose()

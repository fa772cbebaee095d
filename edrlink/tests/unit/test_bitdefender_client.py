from __future__ import annotations

import base64
import json

import httpx
import pytest

from edrlink.core.config import get_settings
from edrlink.core.errors import ProviderConfigError, VendorRequestError, VendorRpcError
from edrlink.providers.bitdefender.client import BitdefenderClient, BitdefenderConfig, build_rpc_params
from edrlink.tests.utils.vendors import FakeBitdefender


def test_partner_level_methods_drop_company_id() -> None:
    params = build_rpc_params("getNetworkInventoryItems", {"companyId": "c-9"}, "company-1")
    assert params == {"page": 1, "perPage": 30}


def test_company_methods_default_company_id_from_config() -> None:
    params = build_rpc_params("getIncidentsList", {"parentId": "p-1", "perPage": 500}, "company-1")
    assert params == {"page": 1, "perPage": 500, "parentId": "p-1", "companyId": "company-1"}


def test_caller_company_id_wins_for_company_methods() -> None:
    params = build_rpc_params("createPackage", {"companyId": "c-9"}, "company-1")
    assert params["companyId"] == "c-9"


def test_config_requires_api_key_and_company_id() -> None:
    settings = get_settings()
    with pytest.raises(ProviderConfigError, match="BITDEFENDER_API_KEY"):
        BitdefenderConfig.from_settings(settings.model_copy(update={"bitdefender_api_key": None}))
    with pytest.raises(ProviderConfigError, match="BITDEFENDER_COMPANY_ID"):
        BitdefenderConfig.from_settings(settings.model_copy(update={"bitdefender_company_id": ""}))


def test_auth_header_uses_key_as_username_with_empty_password() -> None:
    config = BitdefenderConfig(base_url="https://bd.test", api_key="k3y", company_id="c")
    assert config.auth_header() == "Basic " + base64.b64encode(b"k3y:").decode("ascii")


@pytest.mark.asyncio
async def test_unknown_service_fails_before_any_request() -> None:
    vendor = FakeBitdefender()
    client = vendor.client()
    with pytest.raises(ValueError, match="Invalid service: quarantine"):
        await client.rpc_call("quarantine", "getQuarantineItemsList")
    assert vendor.requests == []
    await client.aclose()


@pytest.mark.asyncio
async def test_rpc_call_builds_jsonrpc_envelope() -> None:
    vendor = FakeBitdefender(results={"getPoliciesList": {"policies": []}})
    client = vendor.client()
    response = await client.rpc_call("policies", "getPoliciesList")

    assert response["result"] == {"policies": []}
    request = vendor.requests[0]
    assert request["jsonrpc"] == "2.0"
    assert request["service"] == "policies"
    assert request["params"] == {"page": 1, "perPage": 30}
    assert request["authorization"].startswith("Basic ")
    # Each call carries a fresh id.
    await client.rpc_call("policies", "getPoliciesList")
    assert vendor.requests[0]["id"] != vendor.requests[1]["id"]
    await client.aclose()


@pytest.mark.asyncio
async def test_error_envelope_raises_rpc_error() -> None:
    vendor = FakeBitdefender(errors={"getIncidentsList": {"code": -32602, "message": "Invalid params", "data": {"x": 1}}})
    client = vendor.client()
    with pytest.raises(VendorRpcError) as exc_info:
        await client.rpc_call("incidents", "getIncidentsList", {"parentId": "p"})
    assert exc_info.value.message == "Bitdefender API error: Invalid params"
    assert exc_info.value.rpc_code == -32602
    assert exc_info.value.data == {"x": 1}
    await client.aclose()


@pytest.mark.asyncio
async def test_http_error_raises_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["method"] == "getNetworkInventoryItems"
        return httpx.Response(401, text="unauthorized")

    client = BitdefenderClient(
        BitdefenderConfig.from_settings(),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    with pytest.raises(VendorRequestError, match="HTTP error! status: 401"):
        await client.rpc_call("network", "getNetworkInventoryItems")
    await client.aclose()


@pytest.mark.asyncio
async def test_string_error_envelope_raises_rpc_error() -> None:
    vendor = FakeBitdefender(
        raw={"getIncidentsList": httpx.Response(200, json={"jsonrpc": "2.0", "error": "quota exceeded"})}
    )
    client = vendor.client()
    with pytest.raises(VendorRpcError) as exc_info:
        await client.rpc_call("incidents", "getIncidentsList", {"parentId": "p"})
    assert exc_info.value.message == "Bitdefender API error: quota exceeded"
    assert exc_info.value.rpc_code is None
    await client.aclose()


@pytest.mark.asyncio
async def test_non_json_body_raises_request_error() -> None:
    vendor = FakeBitdefender(raw={"getPoliciesList": httpx.Response(200, text="<html>gateway</html>")})
    client = vendor.client()
    with pytest.raises(VendorRequestError) as exc_info:
        await client.rpc_call("policies", "getPoliciesList")
    assert exc_info.value.body == "<html>gateway</html>"
    await client.aclose()


@pytest.mark.asyncio
async def test_redirect_raises_request_error() -> None:
    vendor = FakeBitdefender(
        raw={"getPoliciesList": httpx.Response(302, headers={"Location": "https://login.test/"})}
    )
    client = vendor.client()
    with pytest.raises(VendorRequestError, match="HTTP error! status: 302"):
        await client.rpc_call("policies", "getPoliciesList")
    await client.aclose()

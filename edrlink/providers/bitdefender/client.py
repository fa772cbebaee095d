from __future__ import annotations

import base64
from dataclasses import dataclass
import logging
import time
from typing import Any
from uuid import uuid4

import httpx

from edrlink.core.config import Settings, get_settings
from edrlink.core.errors import ProviderConfigError, VendorRequestError, VendorRpcError
from edrlink.services.telemetry import record_external_call


logger = logging.getLogger(__name__)

INTEGRATION = "bitdefender"

SERVICE_ENDPOINTS: dict[str, str] = {
    "network": "/api/v1.0/jsonrpc/network",
    "policies": "/api/v1.0/jsonrpc/policies",
    "incidents": "/api/v1.0/jsonrpc/incidents",
    "packages": "/api/v1.0/jsonrpc/packages",
}

# Partner-level methods reject a companyId parameter.
PARTNER_LEVEL_METHODS = frozenset(
    {
        "getAccountsList",
        "getNetworkInventoryItems",
        "getPoliciesList",
    }
)

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 30


@dataclass(frozen=True)
class BitdefenderConfig:
    base_url: str
    api_key: str
    company_id: str

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BitdefenderConfig":
        settings = settings or get_settings()
        if not settings.bitdefender_api_key:
            raise ProviderConfigError("BITDEFENDER_API_KEY environment variable is not set")
        if not settings.bitdefender_company_id:
            raise ProviderConfigError("BITDEFENDER_COMPANY_ID environment variable is not set")
        return cls(
            base_url=settings.bitdefender_api_url,
            api_key=settings.bitdefender_api_key,
            company_id=settings.bitdefender_company_id,
        )

    def auth_header(self) -> str:
        # The API key is the Basic-auth username with an empty password.
        encoded = base64.b64encode(f"{self.api_key}:".encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"


def build_rpc_params(method: str, params: dict[str, Any] | None, company_id: str) -> dict[str, Any]:
    # Apply paging defaults, overlay caller params, then settle companyId per method scope.
    params = dict(params or {})
    final_params: dict[str, Any] = {
        "page": params.get("page") or DEFAULT_PAGE,
        "perPage": params.get("perPage") or DEFAULT_PER_PAGE,
    }
    final_params.update(params)
    if method in PARTNER_LEVEL_METHODS:
        final_params.pop("companyId", None)
    else:
        final_params["companyId"] = params.get("companyId") or company_id
    return final_params


class BitdefenderClient:
    def __init__(
        self,
        config: BitdefenderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._timeout_ms = timeout_ms if timeout_ms is not None else get_settings().ext_call_timeout_ms

    @property
    def config(self) -> BitdefenderConfig:
        return self._config

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        self._client = httpx.AsyncClient(timeout=self._timeout_ms / 1000.0)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def rpc_call(
        self,
        service: str,
        method: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        endpoint = SERVICE_ENDPOINTS.get(service)
        if endpoint is None:
            raise ValueError(f"Invalid service: {service}")

        final_params = build_rpc_params(method, params, self._config.company_id)
        payload = {
            "id": str(uuid4()),
            "jsonrpc": "2.0",
            "method": method,
            "params": final_params,
        }
        headers = {
            "Authorization": self._config.auth_header(),
            "Content-Type": "application/json",
        }
        logger.debug("bitdefender_rpc_call service=%s method=%s", service, method)

        start = time.monotonic()
        try:
            response = await self._get_client().post(
                f"{self._config.base_url.rstrip('/')}{endpoint}",
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            self._record(start, success=False)
            logger.error("bitdefender_rpc_transport_error service=%s method=%s", service, method, exc_info=exc)
            raise VendorRequestError(f"Bitdefender request failed: {exc}") from exc

        if not response.is_success:
            self._record(start, success=False)
            logger.error(
                "bitdefender_rpc_http_error service=%s method=%s status=%s",
                service,
                method,
                response.status_code,
            )
            raise VendorRequestError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            self._record(start, success=False)
            logger.error("bitdefender_rpc_invalid_body service=%s method=%s", service, method)
            raise VendorRequestError(
                "Bitdefender API returned an invalid JSON-RPC body",
                status_code=response.status_code,
                body=response.text,
            )

        error = data.get("error")
        if error:
            self._record(start, success=False)
            # Gateways sometimes send a bare string instead of an error object.
            if isinstance(error, dict):
                message, rpc_code, error_data = error.get("message"), error.get("code"), error.get("data")
            else:
                message, rpc_code, error_data = str(error), None, None
            logger.error(
                "bitdefender_rpc_error service=%s method=%s code=%s",
                service,
                method,
                rpc_code,
            )
            raise VendorRpcError(
                f"Bitdefender API error: {message}",
                rpc_code=rpc_code,
                data=error_data,
            )

        self._record(start, success=True)
        return data

    def _record(self, start: float, *, success: bool) -> None:
        record_external_call(
            integration=INTEGRATION,
            latency_ms=(time.monotonic() - start) * 1000.0,
            success=success,
        )

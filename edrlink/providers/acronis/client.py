from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from edrlink.core.config import Settings, get_settings
from edrlink.core.errors import ProviderConfigError, VendorRequestError
from edrlink.providers.acronis.token_cache import CachedToken, TokenCache
from edrlink.services.telemetry import record_external_call


logger = logging.getLogger(__name__)

INTEGRATION = "acronis"

AUTH = "/api/2/idp/token"
ALERTS = "/api/alert_manager/v1/alerts"
AGENTS = "/api/agent_manager/v2/agents"
TASKS = "/api/task_manager/v2/tasks"
POLICIES = "/api/policy_manager/v4/policies"
BACKUPS = "/api/backup_manager/v2/backups"
TENANTS = "/api/2/tenants"
TENANT_CHILDREN = "/api/2/tenants/{tenant_id}/children"
TENANT_ACTIVATE = "/api/2/tenants/{tenant_id}/activate"
TENANT_ENABLE = "/api/2/tenants/{tenant_id}/enable"
TENANT_DETAILS = "/api/2/tenants/{tenant_id}"
ISOLATE_ENDPOINT = "/api/agent_manager/v2/agents/{agent_id}/actions/isolate"
RESTORE_ENDPOINT = "/api/agent_manager/v2/agents/{agent_id}/actions/restore"
ISOLATION_STATUS = "/api/agent_manager/v2/agents/{agent_id}/isolation_status"
ENDPOINT_DETAILS = "/api/agent_manager/v2/agents/{agent_id}"
ENDPOINT_REGISTER = "/api/agent_manager/v2/agents/register"
ENDPOINT_UNREGISTER = "/api/agent_manager/v2/agents/{agent_id}/unregister"


class AcronisClient:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        token_cache: TokenCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._token_cache = token_cache or TokenCache(
            refresh_margin_s=self._settings.acronis_token_refresh_margin_s
        )
        self._client = client

    @property
    def token_cache(self) -> TokenCache:
        return self._token_cache

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        # Reuse a single client per vendor for connection pooling.
        timeout_s = self._settings.ext_call_timeout_ms / 1000.0
        self._client = httpx.AsyncClient(timeout=timeout_s)
        return self._client

    def _url(self, endpoint: str) -> str:
        return f"{self._settings.acronis_base_url.rstrip('/')}{endpoint}"

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def get_token(self) -> str:
        cached = self._token_cache.get()
        if cached is not None:
            return cached

        client_id = self._settings.acronis_client_id
        client_secret = self._settings.acronis_client_secret
        if not client_id or not client_secret:
            raise ProviderConfigError(
                "ACRONIS_CLIENT_ID and ACRONIS_CLIENT_SECRET are required for Acronis requests"
            )

        start = time.monotonic()
        try:
            response = await self._get_client().post(
                self._url(AUTH),
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            self._record(start, success=False)
            logger.error("acronis_token_request_failed", exc_info=exc)
            raise VendorRequestError("Failed to get Acronis token: request error") from exc

        if not response.is_success:
            self._record(start, success=False)
            logger.error("acronis_token_rejected status=%s", response.status_code)
            raise VendorRequestError(
                f"Failed to get Acronis token: {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )

        self._record(start, success=True)
        payload = response.json()
        token = CachedToken(
            access_token=payload["access_token"],
            issued_at=self._token_cache.now(),
            expires_in=int(payload.get("expires_in") or 0),
        )
        self._token_cache.store(token)
        return token.access_token

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        token = await self.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        start = time.monotonic()
        try:
            response = await self._get_client().request(
                method,
                self._url(endpoint),
                headers=headers,
                params=params,
                json=body,
            )
        except httpx.HTTPError as exc:
            self._record(start, success=False)
            logger.error("acronis_request_error method=%s endpoint=%s", method, endpoint, exc_info=exc)
            raise VendorRequestError(f"Acronis API request failed: {exc}") from exc

        if not response.is_success:
            self._record(start, success=False)
            logger.error(
                "acronis_request_failed method=%s endpoint=%s status=%s",
                method,
                endpoint,
                response.status_code,
            )
            raise VendorRequestError(
                f"Acronis API request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        self._record(start, success=True)
        if not response.content:
            return {}
        return response.json()

    def _record(self, start: float, *, success: bool) -> None:
        record_external_call(
            integration=INTEGRATION,
            latency_ms=(time.monotonic() - start) * 1000.0,
            success=success,
        )

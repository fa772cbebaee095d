from __future__ import annotations

from edrlink.core.config import get_settings
from edrlink.core.errors import ProviderConfigError
from edrlink.providers.acronis.client import AcronisClient
from edrlink.providers.acronis.token_cache import TokenCache
from edrlink.providers.bitdefender.client import BitdefenderClient, BitdefenderConfig


# Process-wide vendor clients; the token cache lives inside the Acronis client.
_acronis_client: AcronisClient | None = None
_bitdefender_client: BitdefenderClient | None = None


def get_acronis_client() -> AcronisClient:
    global _acronis_client
    if _acronis_client is None:
        settings = get_settings()
        _acronis_client = AcronisClient(
            settings=settings,
            token_cache=TokenCache(refresh_margin_s=settings.acronis_token_refresh_margin_s),
        )
    return _acronis_client


def get_bitdefender_client() -> BitdefenderClient:
    global _bitdefender_client
    if _bitdefender_client is None:
        settings = get_settings()
        if not settings.bitdefender_enabled:
            raise ProviderConfigError("Bitdefender integration is disabled")
        _bitdefender_client = BitdefenderClient(
            BitdefenderConfig.from_settings(settings),
            timeout_ms=settings.ext_call_timeout_ms,
        )
    return _bitdefender_client


async def close_clients() -> None:
    # Release pooled connections on app shutdown and drop cached tokens.
    global _acronis_client, _bitdefender_client
    if _acronis_client is not None:
        await _acronis_client.aclose()
    if _bitdefender_client is not None:
        await _bitdefender_client.aclose()
    _acronis_client = None
    _bitdefender_client = None

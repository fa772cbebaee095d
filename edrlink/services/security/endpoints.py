from __future__ import annotations

import logging
from typing import Any, TypedDict
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.errors import PlanLimitReachedError, TenantNotProvisionedError
from edrlink.domain.models import User
from edrlink.persistence.repos.devices import add_device, count_devices, remove_device
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient
from edrlink.providers.bitdefender.client import BitdefenderClient
from edrlink.services.security.plans import limits_snapshot, resolve_plan


logger = logging.getLogger(__name__)

UNNAMED_DEVICE = "Dispositivo sem nome"
UNKNOWN_OS = "Desconhecido"
UNKNOWN = "unknown"
NOT_AVAILABLE = "N/A"

SECURITY_STATUS_CRITICAL = 0
SECURITY_STATUS_PROTECTED = 1


class NormalizedEndpoint(TypedDict):
    id: str
    name: str
    os: str
    status: str
    lastSeen: str | None
    version: str
    isIsolated: bool
    protectionStatus: str


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return None


def normalize_acronis_agent(raw: dict[str, Any]) -> NormalizedEndpoint:
    """Map an agent record from the backup/EDR vendor onto the dashboard shape.

    Fallback rules:

    - name: ``name``, then ``hostname``, then "Dispositivo sem nome"
    - os: ``os_type``, then ``os``, then "Desconhecido"
    - status / protectionStatus: vendor value or "unknown"
    - lastSeen: ``last_seen``, then ``lastSeen``, then None
    - version: vendor value or "N/A"
    - isIsolated: ``isolation_status.isolated`` or False
    """
    isolation = raw.get("isolation_status") or {}
    return {
        "id": raw.get("id"),
        "name": _first_present(raw, "name", "hostname") or UNNAMED_DEVICE,
        "os": _first_present(raw, "os_type", "os") or UNKNOWN_OS,
        "status": raw.get("status") or UNKNOWN,
        "lastSeen": _first_present(raw, "last_seen", "lastSeen"),
        "version": raw.get("version") or NOT_AVAILABLE,
        "isIsolated": bool(isolation.get("isolated") or False),
        "protectionStatus": raw.get("protection_status") or UNKNOWN,
    }


def classify_security_status(value: Any) -> str:
    if value == SECURITY_STATUS_PROTECTED:
        return "protected"
    if value == SECURITY_STATUS_CRITICAL:
        return "critical"
    return "at_risk"


def normalize_bitdefender_endpoint(raw: dict[str, Any]) -> dict[str, Any]:
    """Map a network inventory item from the JSON-RPC vendor.

    ``securityStatus`` 0 marks an isolated (critical) machine; IP and MAC take
    the first reported address or "N/A".
    """
    ips = raw.get("ip") or []
    macs = raw.get("mac") or []
    security_status = raw.get("securityStatus")
    return {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "os": raw.get("operatingSystemVersion"),
        "status": "managed" if raw.get("isManaged") else "unmanaged",
        "lastSeen": raw.get("lastSeen"),
        "version": raw.get("label"),
        "isIsolated": security_status == SECURITY_STATUS_CRITICAL,
        "protectionStatus": classify_security_status(security_status),
        "ipAddress": ips[0] if ips else NOT_AVAILABLE,
        "macAddress": macs[0] if macs else NOT_AVAILABLE,
    }


def _require_tenant(user: User) -> str:
    if not user.acronis_tenant_id:
        raise TenantNotProvisionedError("Tenant não encontrado. Configure a proteção primeiro.")
    return user.acronis_tenant_id


async def list_endpoints(session: AsyncSession, client: AcronisClient, user: User) -> dict[str, Any]:
    tenant_id = _require_tenant(user)
    response = await client.request(acronis.AGENTS, "GET", params={"tenant_id": tenant_id})
    endpoints = [normalize_acronis_agent(item) for item in (response.get("items") or [])]
    current = await count_devices(session, tenant_id=tenant_id)
    return {"endpoints": endpoints, "limits": limits_snapshot(user.plan, current)}


async def create_endpoint(
    session: AsyncSession,
    client: AcronisClient,
    user: User,
    name: str,
    os: str = "windows",
) -> dict[str, Any]:
    tenant_id = _require_tenant(user)
    # Check-then-create is not transactional; concurrent creates may overshoot by one.
    plan = resolve_plan(user.plan)
    current = await count_devices(session, tenant_id=tenant_id)
    if not plan.can_add(current):
        raise PlanLimitReachedError(
            f"Limite de {plan.max_endpoints} endpoints atingido. "
            "Faça upgrade do plano para adicionar mais endpoints.",
            max=plan.max_endpoints,
            current=current,
        )

    response = await client.request(
        acronis.ENDPOINT_REGISTER,
        "POST",
        {
            "tenant_id": tenant_id,
            "name": name,
            "os_type": os,
            "registration_token": {"type": "permanent"},
        },
    )
    await add_device(
        session,
        device_id=uuid4().hex,
        external_id=str(response.get("id")),
        tenant_id=tenant_id,
        user_id=user.id,
        name=name,
        os=os,
    )
    await session.commit()
    logger.info("endpoint_registered tenant_id=%s endpoint_id=%s", tenant_id, response.get("id"))
    return {
        "id": response.get("id"),
        "name": name,
        "os": os,
        "status": "pending",
        "version": response.get("version") or NOT_AVAILABLE,
        "protectionStatus": "pending",
    }


async def delete_endpoint(
    session: AsyncSession,
    client: AcronisClient,
    user: User,
    endpoint_id: str,
) -> None:
    await client.request(acronis.ENDPOINT_UNREGISTER.format(agent_id=endpoint_id), "POST")
    if user.acronis_tenant_id:
        removed = await remove_device(session, tenant_id=user.acronis_tenant_id, external_id=endpoint_id)
        await session.commit()
        logger.info("endpoint_unregistered endpoint_id=%s local_rows=%s", endpoint_id, removed)


def _policy_features(policies: list[dict[str, Any]]) -> dict[str, bool]:
    types = {policy.get("type") for policy in policies}
    return {
        "antivirus": "antimalware" in types,
        "firewall": "firewall" in types,
        "isolation": "endpoint_control" in types,
        "networkProtection": "network_protection" in types,
    }


async def list_bitdefender_endpoints(client: BitdefenderClient) -> dict[str, Any]:
    inventory = await client.rpc_call("network", "getNetworkInventoryItems", {})
    items = list((inventory.get("result") or {}).get("items") or [])
    policies_response = await client.rpc_call("policies", "getPoliciesList", {})
    policies = list((policies_response.get("result") or {}).get("policies") or [])
    return {
        "endpoints": [normalize_bitdefender_endpoint(item) for item in items],
        # The JSON-RPC vendor enforces no endpoint cap.
        "limits": {
            "max": None,
            "current": len(items),
            "canAddMore": True,
            "features": _policy_features(policies),
        },
    }


async def create_bitdefender_endpoint(
    client: BitdefenderClient,
    name: str,
    os: str = "windows",
) -> dict[str, Any]:
    package = await client.rpc_call(
        "packages",
        "createPackage",
        {
            "name": f"Package for {name}",
            "operatingSystem": os.upper(),
            "modules": ["antimalware", "firewall", "content_control", "power_user"],
            "customization": {
                "rebootTimeoutInterval": 60,
                "enableFirewall": True,
                "enableAntimalware": True,
            },
        },
    )
    package_id = package["result"]["id"]
    links_response = await client.rpc_call("packages", "getInstallationLinks", {"packageId": package_id})
    links = list(links_response["result"].get("links") or [])
    endpoint = await client.rpc_call(
        "network",
        "createEndpoint",
        {"label": name, "packageId": package_id, "installationLinks": links},
    )
    return {
        "id": endpoint["result"]["id"],
        "name": name,
        "os": os,
        "installationLink": links[0] if links else None,
    }

from __future__ import annotations

from enum import Enum
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.config import get_settings
from edrlink.core.errors import (
    EdrLinkError,
    ProviderConfigError,
    TenantAlreadyRegisteredError,
    TenantNameConflictError,
    TenantNotFoundError,
    VendorRequestError,
)
from edrlink.domain.models import User
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient


logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 10
DEFAULT_LANGUAGE = "pt-BR"
DEFAULT_COUNTRY = "BR"
_VENDOR_NAME_CONFLICT = "tenant with same name already exists"


class ActivationOutcome(str, Enum):
    ALREADY_ENABLED = "already_enabled"
    ACTIVATED = "activated"
    FAILED = "failed"


def _parent_tenant_id() -> str:
    parent_id = get_settings().acronis_parent_tenant_id
    if not parent_id:
        raise ProviderConfigError("ACRONIS_PARENT_TENANT_ID is required for tenant provisioning")
    return parent_id


def candidate_tenant_name(base_name: str, attempt: int) -> str:
    if attempt == 0:
        return base_name
    return f"{base_name}-{attempt}"


def split_contact_name(email: str) -> tuple[str, str]:
    # "ana.souza@clinic.com" -> ("ana", "souza"); missing parts stay empty.
    local_part = email.split("@")[0]
    parts = local_part.split(".")
    first_name = parts[0] if len(parts) > 0 else ""
    last_name = parts[1] if len(parts) > 1 else ""
    return first_name, last_name


async def list_child_tenants(client: AcronisClient, parent_tenant_id: str) -> list[dict[str, Any]]:
    response = await client.request(
        acronis.TENANT_CHILDREN.format(tenant_id=parent_tenant_id),
        "GET",
    )
    return list(response.get("items") or [])


async def find_tenant_by_name(client: AcronisClient, name: str) -> dict[str, Any] | None:
    # A failed lookup counts as "no collision"; creation surfaces real vendor conflicts.
    try:
        children = await list_child_tenants(client, _parent_tenant_id())
    except VendorRequestError as exc:
        logger.warning("tenant_lookup_failed name=%s", name, exc_info=exc)
        return None
    wanted = name.lower()
    for tenant in children:
        if tenant and tenant.get("name") and str(tenant["name"]).lower() == wanted:
            return tenant
    return None


async def resolve_unique_name(client: AcronisClient, name: str) -> str:
    for attempt in range(MAX_NAME_ATTEMPTS):
        candidate = candidate_tenant_name(name, attempt)
        if await find_tenant_by_name(client, candidate) is None:
            return candidate
        logger.info("tenant_name_taken candidate=%s attempt=%s", candidate, attempt)
    raise TenantNameConflictError(
        "Não foi possível criar um tenant com um nome único após várias tentativas"
    )


async def create_tenant(
    client: AcronisClient,
    name: str,
    email: str,
    phone: str = "",
) -> dict[str, Any]:
    parent_id = _parent_tenant_id()
    final_name = await resolve_unique_name(client, name)
    first_name, last_name = split_contact_name(email)

    tenant_data = {
        "name": final_name,
        "parent_id": parent_id,
        "kind": "customer",
        "customer_type": "default",
        "language": DEFAULT_LANGUAGE,
        "enabled": True,
        "contact": {
            "firstname": first_name,
            "lastname": last_name,
            "email": email,
            "phone": phone,
            "country": DEFAULT_COUNTRY,
        },
    }
    try:
        tenant = await client.request(acronis.TENANTS, "POST", tenant_data)
    except VendorRequestError as exc:
        if _VENDOR_NAME_CONFLICT in exc.message or _VENDOR_NAME_CONFLICT in exc.body:
            raise TenantNameConflictError(
                "Nome da empresa já está em uso. Por favor, tente outro nome."
            ) from exc
        raise
    logger.info("tenant_created tenant_id=%s name=%s", tenant.get("id"), tenant.get("name"))
    return tenant


async def get_tenant(client: AcronisClient, tenant_id: str) -> dict[str, Any] | None:
    try:
        return await client.request(acronis.TENANT_DETAILS.format(tenant_id=tenant_id), "GET")
    except VendorRequestError as exc:
        if exc.vendor_status == 404:
            return None
        raise


async def check_tenant_status(client: AcronisClient, tenant_id: str) -> dict[str, Any]:
    tenant = await get_tenant(client, tenant_id)
    if not tenant:
        raise TenantNotFoundError("Tenant not found")
    enabled = bool(tenant.get("enabled"))
    return {"enabled": enabled, "status": "active" if enabled else "inactive"}


async def try_activate(client: AcronisClient, tenant_id: str) -> ActivationOutcome:
    """Enable a tenant through whichever vendor mechanism accepts the call.

    Strategies run in order (dedicated activate, dedicated enable, PATCH of the
    tenant record) and stop at the first success. Failures never raise.
    """
    try:
        tenant = await get_tenant(client, tenant_id)
    except EdrLinkError as exc:
        logger.warning("tenant_activation_lookup_failed tenant_id=%s", tenant_id, exc_info=exc)
        return ActivationOutcome.FAILED
    if tenant and tenant.get("enabled"):
        return ActivationOutcome.ALREADY_ENABLED

    strategies: list[tuple[str, str, dict[str, Any] | None]] = [
        (acronis.TENANT_ACTIVATE.format(tenant_id=tenant_id), "POST", None),
        (acronis.TENANT_ENABLE.format(tenant_id=tenant_id), "POST", None),
        (acronis.TENANT_DETAILS.format(tenant_id=tenant_id), "PATCH", {"enabled": True}),
    ]
    for endpoint, method, body in strategies:
        try:
            await client.request(endpoint, method, body)
        except EdrLinkError as exc:
            logger.info("tenant_activation_attempt_failed endpoint=%s error=%s", endpoint, exc)
            continue
        logger.info("tenant_activated tenant_id=%s endpoint=%s", tenant_id, endpoint)
        return ActivationOutcome.ACTIVATED

    logger.warning("tenant_activation_exhausted tenant_id=%s", tenant_id)
    return ActivationOutcome.FAILED


async def activate_tenant(client: AcronisClient, tenant_id: str) -> None:
    # Creation already succeeded; vendors usually auto-activate, so the outcome is informational.
    await try_activate(client, tenant_id)


async def register_tenant(
    session: AsyncSession,
    client: AcronisClient,
    user: User,
    company_name: str,
) -> dict[str, Any]:
    if user.acronis_tenant_id:
        raise TenantAlreadyRegisteredError("Usuário já possui um tenant registrado")

    tenant = await create_tenant(client, company_name, user.email, "")
    await activate_tenant(client, tenant["id"])

    user.acronis_tenant_id = tenant["id"]
    await session.commit()

    tenant_name = tenant.get("name")
    if tenant_name == company_name:
        message = "Tenant criado com sucesso"
    else:
        message = (
            f'Tenant criado com sucesso com o nome "{tenant_name}" '
            f'pois "{company_name}" já estava em uso'
        )
    return {"success": True, "tenant": tenant, "message": message}

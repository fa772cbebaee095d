from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.config import get_settings
from edrlink.core.errors import InvalidActivationStepError, TenantNotProvisionedError
from edrlink.domain.models import ActivationStatus, Installer, User


logger = logging.getLogger(__name__)

STEP_DOWNLOAD_INSTALLER = "DOWNLOAD_INSTALLER"
STEP_INSTALL_DEVICE = "INSTALL_DEVICE"
STEP_VERIFY_EMAIL = "VERIFY_EMAIL"
STEP_COMPLETED = "COMPLETED"

# step -> (flag attribute, next step)
_TRANSITIONS: dict[str, tuple[str, str]] = {
    STEP_DOWNLOAD_INSTALLER: ("installer_downloaded", STEP_INSTALL_DEVICE),
    STEP_INSTALL_DEVICE: ("device_installed", STEP_VERIFY_EMAIL),
    STEP_VERIFY_EMAIL: ("email_verified", STEP_COMPLETED),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_tenant(user: User) -> str:
    if not user.acronis_tenant_id:
        raise TenantNotProvisionedError("Tenant não encontrado. Configure a proteção primeiro.")
    return user.acronis_tenant_id


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_activation(status: ActivationStatus | None) -> dict[str, Any]:
    if status is None:
        return {
            "currentStep": STEP_DOWNLOAD_INSTALLER,
            "installerDownloaded": False,
            "deviceInstalled": False,
            "emailVerified": False,
            "wizardCompleted": False,
        }
    return {
        "currentStep": status.current_step,
        "installerDownloaded": status.installer_downloaded,
        "deviceInstalled": status.device_installed,
        "emailVerified": status.email_verified,
        "wizardCompleted": status.wizard_completed,
    }


def serialize_installer(installer: Installer | None) -> dict[str, Any] | None:
    if installer is None:
        return None
    return {"url": installer.url, "os": installer.os, "expiresAt": _isoformat(installer.expires_at)}


async def _get_or_create_status(session: AsyncSession, user_id: str) -> ActivationStatus:
    status = await session.get(ActivationStatus, user_id)
    if status is None:
        status = ActivationStatus(
            user_id=user_id,
            current_step=STEP_DOWNLOAD_INSTALLER,
            installer_downloaded=False,
            device_installed=False,
            email_verified=False,
            wizard_completed=False,
        )
        session.add(status)
    return status


async def get_activation_status(session: AsyncSession, user: User) -> dict[str, Any]:
    status = await session.get(ActivationStatus, user.id)
    return serialize_activation(status)


async def advance_activation(
    session: AsyncSession,
    user: User,
    *,
    step: str,
    action: str,
) -> dict[str, Any]:
    _require_tenant(user)
    if step not in _TRANSITIONS:
        raise InvalidActivationStepError("Step inválido")

    status = await _get_or_create_status(session, user.id)
    # Only "complete" moves the wizard; other actions just read back the state.
    if action == "complete":
        now = _utc_now()
        flag, next_step = _TRANSITIONS[step]
        setattr(status, flag, True)
        setattr(status, f"{flag}_at", now)
        status.current_step = next_step
        if next_step == STEP_COMPLETED:
            status.wizard_completed = True
            status.wizard_completed_at = now
        logger.info("activation_step_completed user_id=%s step=%s", user.id, step)
    await session.commit()
    return serialize_activation(status)


def build_installer_url(tenant_id: str, os: str) -> str:
    base_url = get_settings().acronis_installer_base_url.rstrip("/")
    return f"{base_url}/{tenant_id}/agent_{os}.exe"


async def generate_installer(session: AsyncSession, user: User, os: str = "windows") -> dict[str, Any]:
    tenant_id = _require_tenant(user)
    settings = get_settings()
    expires_at = _utc_now() + timedelta(days=settings.acronis_installer_ttl_days)
    url = build_installer_url(tenant_id, os)

    installer = await session.get(Installer, user.id)
    if installer is None:
        installer = Installer(user_id=user.id, url=url, os=os, expires_at=expires_at)
        session.add(installer)
    else:
        installer.url = url
        installer.os = os
        installer.expires_at = expires_at

    # A fresh installer restarts the wizard at the download step.
    status = await _get_or_create_status(session, user.id)
    status.current_step = STEP_DOWNLOAD_INSTALLER
    await session.commit()
    return serialize_installer(installer)  # type: ignore[return-value]


async def get_installer_status(session: AsyncSession, user: User) -> dict[str, Any]:
    _require_tenant(user)
    status = await session.get(ActivationStatus, user.id)
    installer = await session.get(Installer, user.id)
    return {
        "activationStatus": serialize_activation(status) if status is not None else None,
        "installer": serialize_installer(installer),
    }

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.errors import BackupNotFoundError, UnsupportedActionError
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient
from edrlink.services.security.isolation import set_isolation


logger = logging.getLogger(__name__)

SUPPORTED_ACTIONS = ("scan", "isolate", "restore")

_RUN_NOW = {"type": "once", "start_now": True}


async def _start_scan(client: AcronisClient, device_id: str) -> dict[str, Any]:
    return await client.request(
        acronis.TASKS,
        "POST",
        {
            "type": "antimalware_full_scan",
            "agent_id": device_id,
            "schedule": dict(_RUN_NOW),
        },
    )


async def _start_restore(client: AcronisClient, device_id: str) -> dict[str, Any]:
    backups = await client.request(acronis.BACKUPS, "GET", params={"agent_id": device_id, "limit": 1})
    items = backups.get("items") or []
    if not items:
        raise BackupNotFoundError("Nenhum backup encontrado para este dispositivo")
    return await client.request(
        acronis.TASKS,
        "POST",
        {
            "type": "restore",
            "backup_id": items[0]["id"],
            "agent_id": device_id,
            "schedule": dict(_RUN_NOW),
        },
    )


async def dispatch_action(
    session: AsyncSession,
    client: AcronisClient,
    *,
    user_id: str,
    action: str,
    device_id: str,
) -> dict[str, Any]:
    """Start a one-shot vendor task for a device and return its task id.

    ``isolate`` goes through the isolation controller so both entry points share
    the same check-first policy and audit trail. Task progress is not polled.
    """
    if action not in SUPPORTED_ACTIONS:
        raise UnsupportedActionError("Ação não suportada")

    if action == "isolate":
        result = await set_isolation(
            session,
            client,
            user_id=user_id,
            device_id=device_id,
            action="isolate",
        )
        task_id = result["taskId"]
    elif action == "scan":
        task_id = (await _start_scan(client, device_id)).get("id")
    else:
        task_id = (await _start_restore(client, device_id)).get("id")

    logger.info("security_action_dispatched action=%s device_id=%s task_id=%s", action, device_id, task_id)
    return {
        "success": True,
        "message": f'Ação "{action}" iniciada com sucesso',
        "taskId": task_id,
    }

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.errors import InvalidActionError, IsolationStateConflictError
from edrlink.persistence.repos.security_actions import append_action, list_actions
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient


logger = logging.getLogger(__name__)

ISOLATION_ACTIONS = ("isolate", "restore")

_SUCCESS_MESSAGES = {
    "isolate": "Dispositivo isolado com sucesso",
    "restore": "Dispositivo restaurado com sucesso",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def fetch_isolation_state(client: AcronisClient, device_id: str) -> dict[str, Any]:
    return await client.request(acronis.ISOLATION_STATUS.format(agent_id=device_id), "GET")


async def get_isolation_status(client: AcronisClient, device_id: str) -> dict[str, Any]:
    state = await fetch_isolation_state(client, device_id)
    device = await client.request(acronis.ENDPOINT_DETAILS.format(agent_id=device_id), "GET")
    return {
        "deviceId": device_id,
        "deviceName": device.get("name"),
        "isIsolated": state.get("isolated"),
        "isolationTime": state.get("isolation_time"),
        "isolatedBy": state.get("isolated_by"),
        "isolationReason": state.get("isolation_reason"),
        "lastStatusUpdate": state.get("last_status_update"),
    }


async def set_isolation(
    session: AsyncSession,
    client: AcronisClient,
    *,
    user_id: str,
    device_id: str,
    action: str,
    reason: str | None = None,
) -> dict[str, Any]:
    if action not in ISOLATION_ACTIONS:
        raise InvalidActionError('Ação inválida. Use "isolate" ou "restore"')

    state = await fetch_isolation_state(client, device_id)
    isolated = bool(state.get("isolated"))
    # Reject no-op transitions instead of silently repeating them.
    if action == "isolate" and isolated:
        raise IsolationStateConflictError("Dispositivo já está isolado", code="ALREADY_ISOLATED")
    if action == "restore" and not isolated:
        raise IsolationStateConflictError("Dispositivo não está isolado", code="NOT_ISOLATED")

    endpoint = acronis.ISOLATE_ENDPOINT if action == "isolate" else acronis.RESTORE_ENDPOINT
    response = await client.request(
        endpoint.format(agent_id=device_id),
        "POST",
        {"reason": reason} if reason else None,
    )

    # The vendor task completes asynchronously; the local record only notes dispatch.
    await append_action(
        session,
        user_id=user_id,
        device_id=device_id,
        action=action,
        reason=reason or None,
        status="completed",
        timestamp=_utc_now(),
    )
    await session.commit()
    logger.info("isolation_action_recorded device_id=%s action=%s user_id=%s", device_id, action, user_id)

    return {
        "success": True,
        "message": _SUCCESS_MESSAGES[action],
        "taskId": response.get("id"),
    }


async def list_security_actions(
    session: AsyncSession,
    *,
    user_id: str,
    device_id: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    rows = await list_actions(session, user_id=user_id, device_id=device_id, limit=limit)
    return [
        {
            "id": row.id,
            "deviceId": row.device_id,
            "action": row.action,
            "reason": row.reason,
            "status": row.status,
            "timestamp": row.timestamp.isoformat() if row.timestamp else None,
        }
        for row in rows
    ]

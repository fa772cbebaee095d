from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from edrlink.core.errors import EdrLinkError
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient
from edrlink.providers.bitdefender.client import BitdefenderClient
from edrlink.services.security.endpoints import SECURITY_STATUS_CRITICAL, SECURITY_STATUS_PROTECTED


logger = logging.getLogger(__name__)

ALERT_WINDOW = 100
RECENT_INCIDENT_LIMIT = 10
INCIDENT_ALERT_TYPES = frozenset({"malware_detected", "ransomware_detected", "suspicious_activity"})
UNKNOWN_DEVICE = "Unknown Device"
# The incidents method rejects page sizes below this value.
BITDEFENDER_INCIDENT_PAGE_SIZE = 500


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _short_alert_type(alert_type: str) -> str:
    # "malware_detected" -> "malware", "suspicious_activity" -> "suspiciousactivity".
    return alert_type.replace("_detected", "", 1).replace("_", "", 1)


def summarize_alerts(alerts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    incidents = [alert for alert in alerts if alert.get("type") in INCIDENT_ALERT_TYPES]
    incidents.sort(key=lambda alert: alert.get("created_at") or "", reverse=True)
    return [
        {
            "id": alert.get("id"),
            "type": _short_alert_type(alert["type"]),
            "severity": alert.get("severity"),
            "device": (alert.get("source") or {}).get("name") or UNKNOWN_DEVICE,
            "timestamp": alert.get("created_at"),
            "status": alert.get("status"),
            "description": alert.get("description"),
        }
        for alert in incidents[:RECENT_INCIDENT_LIMIT]
    ]


def compute_acronis_counters(
    agents: list[dict[str, Any]],
    alerts: list[dict[str, Any]],
    last_scan_task: dict[str, Any] | None,
) -> dict[str, Any]:
    return {
        "totalEndpoints": len(agents),
        "protectedEndpoints": sum(
            1
            for agent in agents
            if agent.get("status") == "online" and agent.get("protection_status") == "protected"
        ),
        "threatsBlocked": sum(
            1
            for alert in alerts
            if alert.get("type") == "malware_detected" and alert.get("status") == "resolved"
        ),
        "lastScan": (last_scan_task or {}).get("completed_at"),
    }


async def get_acronis_stats(client: AcronisClient, *, tenant_id: str | None = None) -> dict[str, Any]:
    # Any vendor failure here propagates; only the JSON-RPC path degrades.
    agent_params = {"tenant_id": tenant_id} if tenant_id else None
    agents_response = await client.request(acronis.AGENTS, "GET", params=agent_params)
    alerts_response = await client.request(acronis.ALERTS, "GET", params={"limit": ALERT_WINDOW})
    tasks_response = await client.request(
        acronis.TASKS,
        "GET",
        params={"limit": 1, "type": "antimalware_scan"},
    )

    agents = list(agents_response.get("items") or [])
    alerts = list(alerts_response.get("items") or [])
    tasks = list(tasks_response.get("items") or [])

    return {
        "stats": compute_acronis_counters(agents, alerts, tasks[0] if tasks else None),
        "recentIncidents": summarize_alerts(alerts),
        "endpoints": [
            {
                "id": agent.get("id"),
                "name": agent.get("name"),
                "status": agent.get("protection_status") or "unknown",
                "lastSeen": agent.get("last_seen"),
                "osType": agent.get("os_type"),
                "version": agent.get("version"),
            }
            for agent in agents
        ],
    }


def _incident_severity(value: Any) -> str:
    if value == 3:
        return "high"
    if value == 2:
        return "medium"
    return "low"


def normalize_bitdefender_incident(incident: dict[str, Any]) -> dict[str, Any]:
    incident_type = incident.get("type")
    return {
        "id": incident.get("id") or "",
        "type": incident_type.lower() if incident_type else "unknown",
        "severity": _incident_severity(incident.get("severity")),
        "device": incident.get("endpointName") or UNKNOWN_DEVICE,
        "timestamp": incident.get("detectionTime") or _utc_now_iso(),
        "status": "active" if incident.get("status") == "new" else "contained",
        "description": incident.get("description") or "No description available",
    }


def default_bitdefender_stats() -> dict[str, Any]:
    return {
        "totalEndpoints": 0,
        "managedEndpoints": 0,
        "protectedEndpoints": 0,
        "riskEndpoints": 0,
        "criticalEndpoints": 0,
        "blockedThreats": 0,
        "lastScanTime": _utc_now_iso(),
    }


def compute_bitdefender_counters(
    endpoints: list[dict[str, Any]],
    total: int,
    incidents: list[dict[str, Any]],
) -> dict[str, Any]:
    return {
        "totalEndpoints": total,
        "managedEndpoints": len(endpoints),
        "protectedEndpoints": sum(
            1 for item in endpoints if item.get("securityStatus") == SECURITY_STATUS_PROTECTED
        ),
        "riskEndpoints": sum(
            1 for item in endpoints if item.get("securityStatus") != SECURITY_STATUS_PROTECTED
        ),
        "criticalEndpoints": sum(
            1 for item in endpoints if item.get("securityStatus") == SECURITY_STATUS_CRITICAL
        ),
        "blockedThreats": len(incidents),
        # The inventory API reports no scan time.
        "lastScanTime": _utc_now_iso(),
    }


async def _fetch_incidents(
    client: BitdefenderClient,
    company_id: str,
    parent_id: str,
) -> list[dict[str, Any]]:
    try:
        response = await client.rpc_call(
            "incidents",
            "getIncidentsList",
            {
                "companyId": company_id,
                "parentId": parent_id,
                "perPage": BITDEFENDER_INCIDENT_PAGE_SIZE,
            },
        )
    except EdrLinkError as exc:
        logger.warning("bitdefender_incidents_unavailable parent_id=%s", parent_id, exc_info=exc)
        return []
    return list((response.get("result") or {}).get("items") or [])


async def get_bitdefender_stats(client: BitdefenderClient) -> dict[str, Any]:
    """Aggregate inventory and incident counters for the dashboard.

    An incident failure yields an empty incident list; an inventory failure
    yields zeroed counters. Neither surfaces as an error.
    """
    company_id = client.config.company_id
    try:
        inventory = await client.rpc_call(
            "network",
            "getNetworkInventoryItems",
            {"companyId": company_id},
        )
    except EdrLinkError as exc:
        logger.error("bitdefender_stats_unavailable", exc_info=exc)
        return {"stats": default_bitdefender_stats(), "recentIncidents": []}

    result = inventory.get("result") or {}
    endpoints = list(result.get("items") or [])
    total = int(result.get("total") or 0)

    incidents: list[dict[str, Any]] = []
    parent_id = endpoints[0].get("id") if endpoints else None
    if parent_id:
        # Incidents are listed under the first inventory node.
        incidents = await _fetch_incidents(client, company_id, parent_id)

    return {
        "stats": compute_bitdefender_counters(endpoints, total, incidents),
        "recentIncidents": [normalize_bitdefender_incident(item) for item in incidents],
    }

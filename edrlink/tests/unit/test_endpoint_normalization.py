from __future__ import annotations

from edrlink.services.security.endpoints import (
    classify_security_status,
    normalize_acronis_agent,
    normalize_bitdefender_endpoint,
)


def test_acronis_agent_fallbacks() -> None:
    assert normalize_acronis_agent({"id": "a-1"}) == {
        "id": "a-1",
        "name": "Dispositivo sem nome",
        "os": "Desconhecido",
        "status": "unknown",
        "lastSeen": None,
        "version": "N/A",
        "isIsolated": False,
        "protectionStatus": "unknown",
    }


def test_acronis_agent_prefers_primary_fields_then_aliases() -> None:
    endpoint = normalize_acronis_agent(
        {
            "id": "a-2",
            "hostname": "recepcao-01",
            "os": "linux",
            "status": "online",
            "lastSeen": "2026-10-01T10:00:00Z",
            "version": "15.0.1",
            "isolation_status": {"isolated": True},
            "protection_status": "protected",
        }
    )
    assert endpoint["name"] == "recepcao-01"
    assert endpoint["os"] == "linux"
    assert endpoint["lastSeen"] == "2026-10-01T10:00:00Z"
    assert endpoint["isIsolated"] is True
    assert endpoint["protectionStatus"] == "protected"

    named = normalize_acronis_agent({"id": "a-3", "name": "PC", "hostname": "pc.local", "os_type": "windows"})
    assert named["name"] == "PC"
    assert named["os"] == "windows"


def test_security_status_classification() -> None:
    assert classify_security_status(1) == "protected"
    assert classify_security_status(0) == "critical"
    assert classify_security_status(2) == "at_risk"
    assert classify_security_status(None) == "at_risk"


def test_bitdefender_endpoint_mapping() -> None:
    endpoint = normalize_bitdefender_endpoint(
        {
            "id": "e-1",
            "name": "LAPTOP",
            "operatingSystemVersion": "Windows 11",
            "isManaged": True,
            "securityStatus": 0,
            "ip": ["10.0.0.5", "10.0.0.6"],
            "mac": [],
        }
    )
    assert endpoint["status"] == "managed"
    assert endpoint["isIsolated"] is True
    assert endpoint["protectionStatus"] == "critical"
    assert endpoint["ipAddress"] == "10.0.0.5"
    assert endpoint["macAddress"] == "N/A"

    unmanaged = normalize_bitdefender_endpoint({"id": "e-2", "securityStatus": 1})
    assert unmanaged["status"] == "unmanaged"
    assert unmanaged["isIsolated"] is False
    assert unmanaged["protectionStatus"] == "protected"

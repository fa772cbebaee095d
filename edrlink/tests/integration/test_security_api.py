from __future__ import annotations

from uuid import uuid4

import httpx
from httpx import ASGITransport, AsyncClient
import pytest
from sqlalchemy import select

from edrlink.apps.api.deps import acronis_client
from edrlink.apps.api.main import create_app
from edrlink.domain.models import User, UserSession
from edrlink.persistence.db import SessionLocal
from edrlink.persistence.repos.devices import add_device
from edrlink.tests.utils.auth import create_test_session
from edrlink.tests.utils.vendors import FakeAcronis


pytestmark = pytest.mark.usefixtures("database")


def _app_with(vendor: FakeAcronis):
    app = create_app()
    app.dependency_overrides[acronis_client] = lambda: vendor.client()
    return app


def _client(app, cookies: dict[str, str] | None = None) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)


@pytest.mark.asyncio
async def test_routes_require_session_cookie() -> None:
    app = _app_with(FakeAcronis())
    async with _client(app) as client:
        for method, path in (
            ("GET", "/api/security/register"),
            ("GET", "/api/security/endpoints"),
            ("GET", "/api/security/stats"),
            ("GET", "/api/security/activation"),
        ):
            response = await client.request(method, path)
            assert response.status_code == 401
            assert response.json() == {"error": "Não autorizado", "code": "AUTH_UNAUTHORIZED"}

    async with _client(app, {"edrlink_session": "edls_forged"}) as client:
        response = await client.get("/api/security/register")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_read_only_route_persists_session_last_seen() -> None:
    cookies, user_id = await create_test_session()
    async with _client(_app_with(FakeAcronis()), cookies) as client:
        response = await client.get("/api/security/register")
    assert response.status_code == 200

    async with SessionLocal() as session:
        last_seen = await session.scalar(select(UserSession.last_seen_at).where(UserSession.user_id == user_id))
    assert last_seen is not None


@pytest.mark.asyncio
async def test_register_then_list_endpoints_starts_empty() -> None:
    cookies, user_id = await create_test_session(plan="pro", email="ana.souza@clinic.test")
    vendor = FakeAcronis()
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        status = await client.get("/api/security/register")
        assert status.json() == {"isRegistered": False}

        response = await client.post("/api/security/register", json={"companyName": "Clinic X"})
        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["tenant"]["name"] == "Clinic X"
        assert payload["message"] == "Tenant criado com sucesso"

        status = await client.get("/api/security/register")
        assert status.json() == {"isRegistered": True}

        listing = await client.get("/api/security/endpoints")

    assert listing.status_code == 200
    body = listing.json()
    assert body["endpoints"] == []
    assert body["limits"]["current"] == 0
    assert body["limits"]["max"] == 10
    assert body["limits"]["canAddMore"] is True

    async with SessionLocal() as session:
        user = await session.get(User, user_id)
    assert user.acronis_tenant_id == payload["tenant"]["id"]
    # Creation is followed by a best-effort activation.
    assert vendor.tenants[user.acronis_tenant_id]["enabled"] is True


@pytest.mark.asyncio
async def test_register_reports_substituted_name() -> None:
    cookies, _user_id = await create_test_session()
    vendor = FakeAcronis()
    vendor.add_tenant("Clinic X")
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        response = await client.post("/api/security/register", json={"name": "Clinic X"})
    assert response.status_code == 200
    assert response.json()["tenant"]["name"] == "Clinic X-1"
    assert '"Clinic X-1"' in response.json()["message"]


@pytest.mark.asyncio
async def test_register_validation_and_duplicate() -> None:
    cookies, _user_id = await create_test_session(tenant_id=f"t-{uuid4().hex}")
    app = _app_with(FakeAcronis())
    async with _client(app, cookies) as client:
        missing = await client.post("/api/security/register", json={})
        duplicate = await client.post("/api/security/register", json={"companyName": "Again"})

    assert missing.status_code == 400
    assert missing.json()["error"] == "Nome da empresa é obrigatório"
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "ALREADY_REGISTERED"


@pytest.mark.asyncio
async def test_register_name_conflict_returns_409() -> None:
    cookies, _user_id = await create_test_session()
    vendor = FakeAcronis()
    vendor.add_tenant("Acme")
    for suffix in range(1, 10):
        vendor.add_tenant(f"Acme-{suffix}")
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        response = await client.post("/api/security/register", json={"companyName": "Acme"})
    assert response.status_code == 409
    assert response.json()["code"] == "NAME_CONFLICT"


@pytest.mark.asyncio
async def test_free_plan_with_one_device_cannot_add_another() -> None:
    tenant_id = f"t-{uuid4().hex}"
    cookies, user_id = await create_test_session(plan="free", tenant_id=tenant_id)
    async with SessionLocal() as session:
        await add_device(
            session,
            device_id=uuid4().hex,
            external_id="a-existing",
            tenant_id=tenant_id,
            user_id=user_id,
            name="PC-1",
            os="windows",
        )
        await session.commit()
    vendor = FakeAcronis()
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        response = await client.post("/api/security/endpoints", json={"name": "PC-2"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "PLAN_LIMIT_REACHED"
    assert body["max"] == 1
    assert body["current"] == 1
    assert vendor.count("POST", "/api/agent_manager/v2/agents/register") == 0


@pytest.mark.asyncio
async def test_endpoint_create_and_delete_round_trip() -> None:
    cookies, _user_id = await create_test_session(plan="basic", tenant_id=f"t-{uuid4().hex}")
    vendor = FakeAcronis()
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        missing_name = await client.post("/api/security/endpoints", json={})
        created = await client.post("/api/security/endpoints", json={"name": "PC-1"})
        listing = await client.get("/api/security/endpoints")
        missing_id = await client.delete("/api/security/endpoints")
        endpoint_id = created.json()["endpoint"]["id"]
        deleted = await client.delete(f"/api/security/endpoints?id={endpoint_id}")
        after = await client.get("/api/security/endpoints")

    assert missing_name.status_code == 400
    assert created.status_code == 200
    assert created.json()["message"] == "Endpoint registrado com sucesso"
    assert listing.json()["limits"]["current"] == 1
    assert missing_id.status_code == 400
    assert missing_id.json()["error"] == "ID do endpoint é obrigatório"
    assert deleted.json() == {"message": "Endpoint removido com sucesso"}
    assert after.json()["limits"]["current"] == 0


@pytest.mark.asyncio
async def test_endpoints_without_tenant_return_400() -> None:
    cookies, _user_id = await create_test_session()
    app = _app_with(FakeAcronis())
    async with _client(app, cookies) as client:
        response = await client.get("/api/security/endpoints")
    assert response.status_code == 400
    assert response.json()["code"] == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_restore_without_backup_reports_missing_backup() -> None:
    cookies, _user_id = await create_test_session(plan="pro", tenant_id=f"t-{uuid4().hex}")
    app = _app_with(FakeAcronis())
    async with _client(app, cookies) as client:
        response = await client.post(
            "/api/security/actions",
            json={"action": "restore", "deviceId": "x"},
        )
    assert response.status_code == 500
    assert "nenhum backup encontrado" in response.json()["error"].lower()


@pytest.mark.asyncio
async def test_actions_validation() -> None:
    cookies, _user_id = await create_test_session()
    app = _app_with(FakeAcronis())
    async with _client(app, cookies) as client:
        missing = await client.post("/api/security/actions", json={"deviceId": "a-1"})
        unsupported = await client.post(
            "/api/security/actions",
            json={"action": "reboot", "deviceId": "a-1"},
        )
        scan = await client.post("/api/security/actions", json={"action": "scan", "deviceId": "a-1"})

    assert missing.status_code == 400
    assert missing.json()["error"] == "Ação não especificada"
    assert unsupported.status_code == 400
    assert unsupported.json() == {"error": "Ação não suportada", "code": "UNSUPPORTED_ACTION"}
    assert scan.status_code == 200
    assert scan.json()["success"] is True


@pytest.mark.asyncio
async def test_isolation_flow_and_history() -> None:
    cookies, _user_id = await create_test_session(plan="basic", tenant_id=f"t-{uuid4().hex}")
    app = _app_with(FakeAcronis())
    async with _client(app, cookies) as client:
        missing = await client.get("/api/security/isolation")
        isolated = await client.post(
            "/api/security/isolation",
            json={"deviceId": "a-1", "action": "isolate", "reason": "malware"},
        )
        again = await client.post(
            "/api/security/isolation",
            json={"deviceId": "a-1", "action": "isolate"},
        )
        invalid = await client.post(
            "/api/security/isolation",
            json={"deviceId": "a-1", "action": "wipe"},
        )
        status = await client.get("/api/security/isolation?deviceId=a-1")
        history = await client.get("/api/security/isolation/history?deviceId=a-1")

    assert missing.status_code == 400
    assert isolated.status_code == 200
    assert isolated.json()["message"] == "Dispositivo isolado com sucesso"
    assert again.status_code == 400
    assert again.json() == {"error": "Dispositivo já está isolado", "code": "ALREADY_ISOLATED"}
    assert invalid.json()["code"] == "INVALID_ACTION"
    assert status.json()["isIsolated"] is True
    items = history.json()["items"]
    assert len(items) == 1
    assert items[0]["reason"] == "malware"


@pytest.mark.asyncio
async def test_stats_and_tenant_status() -> None:
    vendor = FakeAcronis(
        agents=[{"id": "a-1", "status": "online", "protection_status": "protected"}],
        alerts=[{"id": "al-1", "type": "malware_detected", "status": "resolved", "created_at": "2026-10-01"}],
    )
    tenant = vendor.add_tenant("Clinic", enabled=True)
    cookies, _user_id = await create_test_session(plan="pro", tenant_id=tenant["id"])
    app = _app_with(vendor)
    async with _client(app, cookies) as client:
        stats = await client.get("/api/security/stats")
        tenant_status = await client.get("/api/security/tenant/status")

    assert stats.status_code == 200
    assert stats.json()["stats"]["protectedEndpoints"] == 1
    assert stats.json()["stats"]["threatsBlocked"] == 1
    assert stats.json()["recentIncidents"][0]["type"] == "malware"
    assert tenant_status.json() == {"enabled": True, "status": "active"}


@pytest.mark.asyncio
async def test_stats_vendor_failure_returns_500() -> None:
    class BrokenAcronis(FakeAcronis):
        def handler(self, request):
            if request.url.path == "/api/alert_manager/v1/alerts":
                return httpx.Response(502, text="bad gateway")
            return super().handler(request)

    cookies, _user_id = await create_test_session()
    app = _app_with(BrokenAcronis())
    async with _client(app, cookies) as client:
        response = await client.get("/api/security/stats")
    assert response.status_code == 500
    assert response.json()["code"] == "VENDOR_ERROR"

import pytest
from fastapi.testclient import TestClient

from origination.core import health as health_module
from origination.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def _mock_env(monkeypatch):
    monkeypatch.setattr(health_module.settings, "environment", "test")
    yield


def test_health_live_returns_ok() -> None:
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["code"] == "ok"
    payload = body["data"]
    assert payload.get("status") == "ok"
    assert "timestamp" in payload


def test_health_live_echoes_request_id() -> None:
    response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_health_ready_ok(monkeypatch) -> None:
    async def ok_db(*_args):
        return {"status": "ok"}

    async def ok_redis():
        return {"status": "ok"}

    monkeypatch.setattr(health_module, "_check_db", ok_db)
    monkeypatch.setattr(health_module, "_check_redis", ok_redis)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload.get("status") == "ok"
    assert payload.get("ready") is True
    assert payload["environment"] == "test"
    assert payload["checks"]["database"]["status"] == "ok"
    assert payload["checks"]["redis"]["status"] == "ok"


def test_health_ready_degraded(monkeypatch) -> None:
    async def bad_db(*_args):
        return {"status": "error", "error": "unreachable"}

    async def ok_redis():
        return {"status": "ok"}

    monkeypatch.setattr(health_module, "_check_db", bad_db)
    monkeypatch.setattr(health_module, "_check_redis", ok_redis)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload.get("status") == "degraded"
    assert payload.get("ready") is False
    assert payload["checks"]["database"]["status"] == "error"


@pytest.mark.asyncio
async def test_db_check_without_database_reports_error() -> None:
    result = await health_module._check_db(None)
    assert result["status"] == "error"


def test_legacy_health_route(monkeypatch) -> None:
    async def ok(*_args):
        return {"status": "ok"}

    monkeypatch.setattr(health_module, "_check_db", ok)
    monkeypatch.setattr(health_module, "_check_redis", ok)

    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["data"]["ready"] is True

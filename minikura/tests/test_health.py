"""Tests for the status API endpoints."""
from unittest.mock import MagicMock

from minikura.main import app
from minikura.runtime import Operator


async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert "Minikura" in r.json()["message"]


async def test_status_before_start(client):
    r = await client.get("/api/v1/status")
    assert r.status_code == 200
    body = r.json()
    assert body["namespace"] == "minikura-test"
    assert body["controllers"] == []
    assert body["reflector"] is None


async def test_status_with_operator(client, mock_cluster):
    app.state.operator = Operator(cluster=mock_cluster, enable_reflection=True)
    try:
        r = await client.get("/api/v1/status")
    finally:
        app.state.operator = None

    body = r.json()
    assert [c["name"] for c in body["controllers"]] == ["compute-controller", "proxy-controller"]
    assert body["crd_reflection"] is True
    assert body["reflector"]["state"] == "stopped"


async def test_health_connected(client):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"


async def test_request_id_is_echoed(client):
    r = await client.get("/", headers={"x-request-id": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


async def test_health_reports_database_error(client):
    from minikura.database import get_db

    broken = MagicMock()
    broken.execute.side_effect = RuntimeError("connection refused")

    def _override():
        yield broken

    app.dependency_overrides[get_db] = _override
    r = await client.get("/api/v1/health")
    body = r.json()
    assert body["status"] == "unhealthy"
    assert "connection refused" in body["error"]

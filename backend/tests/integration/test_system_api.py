import pytest

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def test_health(async_client):
    resp = await async_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Response-Time"].endswith("ms")


async def test_request_id_echoed(async_client):
    resp = await async_client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    generated = await async_client.get("/api/health")
    assert generated.headers["X-Request-ID"]


async def test_readiness(async_client, database):
    resp = await async_client.get("/api/system/readiness")
    assert resp.status_code == 200
    body = resp.json()
    assert body["database"] == {"status": "healthy", "connection": True, "path": str(database.path)}
    assert body["uptime_s"] >= 0


async def test_metrics_exposition(async_client):
    await async_client.get("/api/health")
    resp = await async_client.get("/metrics")
    assert resp.status_code == 200
    assert "invoicedesk_requests_total" in resp.text
    assert 'path="/api/health"' in resp.text


async def test_root_describes_api(async_client):
    body = (await async_client.get("/")).json()
    assert body["health"] == "/api/health"


async def test_unknown_route_uses_error_envelope(async_client):
    resp = await async_client.get("/api/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"]["code"] == "NOT_FOUND"

"""Health endpoint tests."""

import pytest

from crossfun.cache import set_redis


class PingingRedis:
    async def ping(self):
        return True

    async def incr(self, key):
        return 1

    async def expire(self, key, seconds):
        return True


@pytest.mark.asyncio
async def test_health_degraded_without_redis(client):
    """Database up, Redis absent: still serving, but degraded."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["redis"].startswith("unavailable")
    assert data["status"] == "degraded"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_healthy_with_redis(client):
    set_redis(PingingRedis())
    try:
        resp = await client.get("/api/health")
    finally:
        set_redis(None)
    assert resp.json()["status"] == "healthy"
    assert resp.json()["redis"] == "ok"


@pytest.mark.asyncio
async def test_health_unhealthy_without_database(client):
    from crossfun.main import app

    engine = app.state.engine
    del app.state.engine
    try:
        resp = await client.get("/api/health")
    finally:
        app.state.engine = engine
    data = resp.json()
    assert data["status"] == "unhealthy"
    assert data["database"].startswith("error")

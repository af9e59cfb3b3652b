"""
Tests for the integration health watcher.
"""

import asyncio

import pytest

from salon_admin.backend_client import BackendAPIError, BackendClient

SNAPSHOT = {"google_calendar": {"status": "ok"}}


async def wait_for(condition, attempts: int = 100):
    for _ in range(attempts):
        if condition():
            return True
        await asyncio.sleep(0.01)
    return condition()


class TestFetch:
    async def test_fetch_caches_the_snapshot(self, monitor, backend, http_client, fake_redis):
        backend.on("GET", "/admin/integrations/health/7", json=SNAPSHOT)
        assert monitor.latest("7") is None

        snapshot = await monitor.fetch(BackendClient(http_client), "7", access_token="admin-token")

        assert snapshot == SNAPSHOT
        assert monitor.latest("7") == SNAPSHOT
        assert fake_redis.ttls["integration_health:7"] == monitor.snapshot_ttl
        request = backend.last("GET", "/admin/integrations/health/7")
        assert request.headers["Authorization"] == "Bearer admin-token"
        assert "X-Tenant-ID" not in request.headers

    async def test_fetch_failure_keeps_the_old_snapshot(self, monitor, backend, http_client):
        client = BackendClient(http_client)
        backend.on("GET", "/admin/integrations/health/7", responses=[(200, SNAPSHOT), (500, None)])
        await monitor.fetch(client, "7")
        with pytest.raises(BackendAPIError):
            await monitor.fetch(client, "7")
        assert monitor.latest("7") == SNAPSHOT

    def test_snapshot_ttl_outlives_the_interval(self, monitor):
        assert monitor.snapshot_ttl >= 1
        monitor.interval = 30
        assert monitor.snapshot_ttl == 120


class TestWatch:
    async def test_start_is_idempotent(self, monitor, backend, http_client):
        backend.on("GET", "/admin/integrations/health/7", json=SNAPSHOT)
        client = BackendClient(http_client)

        assert monitor.start(client, "7", "admin-token") is True
        assert monitor.start(client, "7", "admin-token") is False
        assert monitor.is_watching("7")

        assert await monitor.stop("7") is True
        assert await monitor.stop("7") is False
        assert not monitor.is_watching("7")

    async def test_polling_refreshes_the_snapshot(self, monitor, backend, http_client):
        backend.on(
            "GET", "/admin/integrations/health/7", responses=[(500, None), (200, SNAPSHOT)]
        )
        monitor.start(BackendClient(http_client), "7", "admin-token")

        assert await wait_for(lambda: monitor.latest("7") == SNAPSHOT)
        assert monitor.is_watching("7")
        await monitor.stop_all()
        assert not monitor.is_watching("7")

    async def test_polling_stops_on_401(self, monitor, backend, http_client):
        backend.on("GET", "/admin/integrations/health/7", status=401, json={"detail": "expired"})
        monitor.start(BackendClient(http_client), "7", "stale-token")

        assert await wait_for(lambda: not monitor.is_watching("7"))
        assert await monitor.stop("7") is False
        assert len(backend.calls("GET", "/admin/integrations/health/7")) == 1

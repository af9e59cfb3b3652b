"""
Integration health watcher for the master-admin console

Each watched tenant gets one asyncio task that re-fetches the backend health
snapshot on a fixed interval and caches it. Polling has no jitter or backoff
and stops for good once the backend answers 401.
"""

import asyncio
import logging
from typing import Any, Optional

from ..backend_client import BackendAPIError, BackendClient
from ..cache import Cache, build_health_snapshot_key, cache
from ..config import HEALTH_POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


def health_path(tenant_id: str) -> str:
    return f"/admin/integrations/health/{tenant_id}"


class HealthMonitor:
    def __init__(self, snapshot_cache: Cache, interval: float = HEALTH_POLL_INTERVAL_SECONDS):
        self.cache = snapshot_cache
        self.interval = interval
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def snapshot_ttl(self) -> int:
        return max(int(self.interval * 4), 1)

    def latest(self, tenant_id: str) -> Optional[dict[str, Any]]:
        return self.cache.get(build_health_snapshot_key(tenant_id))

    async def fetch(
        self, backend: BackendClient, tenant_id: str, access_token: Optional[str] = None
    ) -> dict[str, Any]:
        """Fetch a fresh snapshot and cache it"""
        snapshot = await backend.get(
            health_path(tenant_id),
            access_token=access_token,
            tenant_scoped=False,
            error_message="Failed to load integration health",
        )
        self.cache.set(build_health_snapshot_key(tenant_id), snapshot, ttl=self.snapshot_ttl)
        return snapshot

    def is_watching(self, tenant_id: str) -> bool:
        task = self._tasks.get(tenant_id)
        return task is not None and not task.done()

    def start(self, backend: BackendClient, tenant_id: str, access_token: str) -> bool:
        """Start auto-refresh for a tenant; False when it is already running"""
        if self.is_watching(tenant_id):
            return False
        self._tasks[tenant_id] = asyncio.create_task(self._poll(backend, tenant_id, access_token))
        logger.info(f"🔄 Integration health watch started for tenant {tenant_id}")
        return True

    async def stop(self, tenant_id: str) -> bool:
        task = self._tasks.pop(tenant_id, None)
        if task is None:
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"🛑 Integration health watch stopped for tenant {tenant_id}")
        return True

    async def stop_all(self) -> None:
        for tenant_id in list(self._tasks):
            await self.stop(tenant_id)

    async def _poll(self, backend: BackendClient, tenant_id: str, access_token: str) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.fetch(backend, tenant_id, access_token)
            except BackendAPIError as e:
                if e.status_code == 401:
                    logger.warning(f"⚠️ Health watch for tenant {tenant_id} lost authorization, stopping")
                    self._tasks.pop(tenant_id, None)
                    return
                logger.error(f"❌ Health refresh failed for tenant {tenant_id}: {e.message}")


# Global monitor instance
health_monitor = HealthMonitor(cache)


def get_health_monitor() -> HealthMonitor:
    return health_monitor

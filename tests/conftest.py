"""
Pytest fixtures and configuration for the test suite.

Mocking strategy:
- The external booking backend is an httpx.MockTransport routed by (method, path)
- Redis is an in-memory stand-in exposing only get/setex/delete
- FastAPI dependencies are swapped with app.dependency_overrides
"""

import json
import os
from typing import Any, Callable, Optional, Union

# Set test environment variables before importing the app
os.environ["BACKEND_URL"] = "http://backend.test"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["CSRF_ENABLED"] = "false"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from salon_admin.auth import get_http_client, get_session_store  # noqa: E402
from salon_admin.cache import Cache  # noqa: E402
from salon_admin.config import SESSION_COOKIE_NAME  # noqa: E402
from salon_admin.routes.auth import (  # noqa: E402
    rate_limit_login,
    rate_limit_password_reset,
    rate_limit_register,
)
from salon_admin.services.health_monitor import HealthMonitor, get_health_monitor  # noqa: E402
from salon_admin.sessions import SessionData, SessionStore  # noqa: E402

TENANT = {
    "id": 7,
    "business_name": "Fade Masters",
    "business_type": "barbershop",
    "timezone": "America/New_York",
}
OWNER = {"id": 1, "email": "owner@fademasters.com", "role": "tenant_owner"}
MASTER_ADMIN = {"id": 99, "email": "admin@avella.ai", "role": "master_admin"}

# (status, json) pair or a handler building the response
Responder = Union[tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeRedis:
    """Dict-backed subset of the redis client used by Cache"""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, key):
        self.data.pop(key, None)
        return 1


class FakeBackend:
    """
    Routes backend calls by (method, path) with the /api prefix stripped.

    A route may hold several responses; they are served in order and the
    last one repeats.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        json: Any = None,
        status: int = 200,
        responses: Optional[list[Responder]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        if responses is None:
            responses = [handler] if handler else [(status, json)]
        self.routes[(method.upper(), path)] = list(responses)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]
        self.requests.append(request)

        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"detail": f"No route for {request.method} {path}"})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(responder):
            return responder(request)
        status, payload = responder
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        prefixed = f"/api{path}"
        return [r for r in self.requests if r.method == method.upper() and r.url.path == prefixed]

    def last(self, method: str, path: str) -> httpx.Request:
        calls = self.calls(method, path)
        assert calls, f"{method} {path} was never called"
        return calls[-1]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url="http://backend.test/api", transport=httpx.MockTransport(self.handle)
        )


def body(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


async def _no_rate_limit():
    return None


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend) -> httpx.AsyncClient:
    return backend.client()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis) -> SessionStore:
    return SessionStore(Cache(fake_redis))


@pytest.fixture
def monitor(fake_redis) -> HealthMonitor:
    return HealthMonitor(Cache(fake_redis), interval=0.01)


@pytest.fixture
def session(store) -> SessionData:
    """Signed-in owner with an active tenant (not bound to any HTTP client)"""
    session = store.create()
    session.store_tokens("access-token", "refresh-token")
    session.user = dict(OWNER)
    session.tenants = [dict(TENANT)]
    session.current_tenant = dict(TENANT)
    store.save(session)
    return session


@pytest.fixture
def client(http_client, store, monitor):
    """TestClient with the backend, Redis and rate limiters replaced"""
    from salon_admin.main import app

    app.dependency_overrides[get_http_client] = lambda: http_client
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_health_monitor] = lambda: monitor
    for limiter in (rate_limit_login, rate_limit_register, rate_limit_password_reset):
        app.dependency_overrides[limiter] = _no_rate_limit

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def sign_in(client, store):
    """Create a stored session and attach its cookie to the test client"""

    def _sign_in(user: Optional[dict] = None, tenant: Optional[dict] = TENANT, **fields) -> SessionData:
        session = store.create()
        session.store_tokens("access-token", "refresh-token")
        session.user = dict(user or OWNER)
        if tenant:
            session.tenants = [dict(tenant)]
            session.current_tenant = dict(tenant)
        for name, value in fields.items():
            setattr(session, name, value)
        store.save(session)
        client.cookies.set(SESSION_COOKIE_NAME, session.id)
        return session

    return _sign_in

"""
Tests for the CSRF, security-header and rate-limit layers and for session storage failures.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from salon_admin.cache import Cache
from salon_admin.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CSRFMiddleware, is_path_exempt
from salon_admin.main import get_csrf_token
from salon_admin.rate_limiter import check_rate_limit
from salon_admin.security_headers import SecurityHeadersMiddleware
from salon_admin.sessions import SessionStore


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(CSRFMiddleware)

    @app.get("/")
    async def root():
        return {"ok": True}

    @app.post("/clients")
    async def create_client():
        return {"created": True}

    @app.post("/auth/login")
    async def login():
        return {"ok": True}

    return app


class TestCSRF:
    def test_exempt_paths(self):
        assert is_path_exempt("/auth/login")
        assert is_path_exempt("/health/redis")
        assert is_path_exempt("/")
        assert not is_path_exempt("/clients")
        assert not is_path_exempt("/auth/logout")

    def test_safe_requests_receive_a_token(self):
        client = TestClient(build_app())
        response = client.get("/")
        assert response.status_code == 200
        assert CSRF_COOKIE_NAME in response.cookies

    def test_writes_need_cookie_and_header(self):
        client = TestClient(build_app())
        missing = client.post("/clients")
        assert missing.status_code == 403
        assert missing.json()["detail"].startswith("CSRF token missing")

        client.cookies.set(CSRF_COOKIE_NAME, "token-1")
        assert client.post("/clients").json()["detail"].startswith("CSRF token header missing")
        assert client.post("/clients", headers={CSRF_HEADER_NAME: "token-2"}).status_code == 403
        assert client.post("/clients", headers={CSRF_HEADER_NAME: "token-1"}).json() == {"created": True}

    def test_login_is_exempt(self):
        client = TestClient(build_app())
        assert client.post("/auth/login").status_code == 200

    def test_token_endpoint_handshake(self):
        app = build_app()
        app.add_api_route("/csrf-token", get_csrf_token, methods=["GET"])
        client = TestClient(app)

        issued = client.get("/csrf-token")
        token = issued.json()["csrf_token"]
        cookies = [h for h in issued.headers.get_list("set-cookie") if h.startswith(f"{CSRF_COOKIE_NAME}=")]
        assert len(cookies) == 1
        assert client.cookies[CSRF_COOKIE_NAME] == token

        response = client.post("/clients", headers={CSRF_HEADER_NAME: token})
        assert response.status_code == 200
        assert response.json() == {"created": True}


class TestSecurityHeaders:
    def test_headers_are_added_except_on_excluded_paths(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health"])

        @app.get("/clients")
        async def clients():
            return []

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        client = TestClient(app)
        assert client.get("/clients").headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Content-Type-Options" not in client.get("/health").headers


class BrokenRedis:
    def get(self, key):
        raise ConnectionError("redis down")

    def setex(self, key, ttl, value):
        raise ConnectionError("redis down")

    def delete(self, key):
        raise ConnectionError("redis down")


class TestSessionStore:
    def test_round_trip(self, store):
        session = store.create()
        session.store_tokens("a", "r")
        store.save(session)
        assert store.get(session.id).access_token == "a"
        store.delete(session.id)
        assert store.get(session.id) is None

    def test_unknown_or_missing_id(self, store):
        assert store.get(None) is None
        assert store.get("nope") is None

    def test_save_failure_is_503(self):
        store = SessionStore(Cache(BrokenRedis()))
        with pytest.raises(HTTPException) as exc:
            store.save(store.create())
        assert exc.value.status_code == 503

    def test_read_failure_looks_signed_out(self):
        assert SessionStore(Cache(BrokenRedis())).get("abc") is None


class CounterRedis:
    """INCR/TTL/EXPIRE subset backing the fixed-window limiter"""

    def __init__(self):
        self.counts: dict[str, int] = {}
        self.expiry: dict[str, int] = {}

    def pipeline(self):
        return CounterPipeline(self)

    def expire(self, key, seconds):
        self.expiry[key] = seconds


class CounterPipeline:
    def __init__(self, redis):
        self.redis = redis
        self.key = None

    def incr(self, key):
        self.key = key

    def ttl(self, key):
        pass

    def execute(self):
        self.redis.counts[self.key] = self.redis.counts.get(self.key, 0) + 1
        return self.redis.counts[self.key], self.redis.expiry.get(self.key, -1)


class TestRateLimit:
    def test_fixed_window(self):
        redis = CounterRedis()
        results = [check_rate_limit("login:1.2.3.4", 2, 300, redis) for _ in range(3)]
        assert [allowed for allowed, _, _ in results] == [True, True, False]
        assert results[-1] == (False, 3, 300)
        assert redis.expiry == {"login:1.2.3.4": 300}

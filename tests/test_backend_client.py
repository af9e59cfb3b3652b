"""
Tests for the backend HTTP client: headers, error mapping and refresh-on-401.
"""

import httpx
import pytest

from conftest import body
from salon_admin.backend_client import TENANT_HEADER, BackendAPIError, BackendClient
from salon_admin.utils.errors import ERROR_MESSAGES


@pytest.fixture
def api(http_client, session, store):
    return BackendClient(http_client, session, store)


class TestHeaders:
    async def test_bearer_and_tenant_headers(self, api, backend):
        backend.on("GET", "/services", json=[])
        await api.get("/services")
        request = backend.last("GET", "/services")
        assert request.headers["Authorization"] == "Bearer access-token"
        assert request.headers[TENANT_HEADER] == "7"

    async def test_unscoped_calls_skip_the_tenant(self, api, backend):
        backend.on("GET", "/tenants/my", json=[])
        await api.get("/tenants/my", tenant_scoped=False)
        assert TENANT_HEADER not in backend.last("GET", "/tenants/my").headers

    async def test_explicit_token_and_tenant_win(self, api, backend):
        backend.on("POST", "/services/initialize-default", json={})
        await api.post("/services/initialize-default", access_token="owner-token", tenant_id="42")
        request = backend.last("POST", "/services/initialize-default")
        assert request.headers["Authorization"] == "Bearer owner-token"
        assert request.headers[TENANT_HEADER] == "42"

    async def test_impersonated_tenant_is_stamped(self, api, backend, session):
        from salon_admin.sessions import Impersonation

        session.impersonation = Impersonation(tenant_id="13")
        backend.on("GET", "/clients", json=[])
        await api.get("/clients")
        assert backend.last("GET", "/clients").headers[TENANT_HEADER] == "13"

    async def test_public_client_sends_no_auth(self, http_client, backend):
        backend.on("POST", "/auth/forgot-password", json={"ok": True})
        await BackendClient(http_client).post("/auth/forgot-password", json={"email": "a@b.co"})
        request = backend.last("POST", "/auth/forgot-password")
        assert "Authorization" not in request.headers
        assert body(request) == {"email": "a@b.co"}

    async def test_none_params_are_dropped(self, api, backend):
        backend.on("GET", "/admin/templates", json=[])
        await api.get("/admin/templates", params={"tenant_id": None, "active": "true"})
        request = backend.last("GET", "/admin/templates")
        assert dict(request.url.params) == {"active": "true"}


class TestResponses:
    async def test_json_body_is_decoded(self, api, backend):
        backend.on("GET", "/barbers", json=[{"id": 1}])
        assert await api.get("/barbers") == [{"id": 1}]

    async def test_empty_body_is_none(self, api, backend):
        backend.on("DELETE", "/clients/5", status=204)
        assert await api.delete("/clients/5") is None

    async def test_raw_returns_the_response(self, api, backend):
        backend.on("GET", "/admin/metrics/7/export", handler=lambda r: httpx.Response(200, text="a,b\n1,2"))
        response = await api.get("/admin/metrics/7/export", raw=True)
        assert response.text == "a,b\n1,2"

    async def test_error_message_comes_from_the_body(self, api, backend):
        backend.on("POST", "/clients", status=400, json={"detail": "Email already registered"})
        with pytest.raises(BackendAPIError) as exc:
            await api.post("/clients", json={})
        assert exc.value.status_code == 400
        assert exc.value.message == "Email already registered"
        assert exc.value.payload == {"detail": "Email already registered"}

    async def test_error_without_body_uses_the_call_message(self, api, backend):
        backend.on("GET", "/clients/9", status=404)
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/clients/9", error_message="Client not found")
        assert exc.value.message == "Client not found"

    async def test_error_without_body_or_call_message_uses_the_status(self, api, backend):
        backend.on("GET", "/clients/9", status=404)
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/clients/9")
        assert exc.value.message == ERROR_MESSAGES["NOT_FOUND"]

    async def test_server_errors_keep_the_status_message(self, api, backend):
        backend.on("POST", "/services", status=503, json={})
        with pytest.raises(BackendAPIError) as exc:
            await api.post("/services", error_message="Failed to create service")
        assert exc.value.message == ERROR_MESSAGES["SERVER_ERROR"]

    async def test_transport_failure_is_a_502(self, api, backend):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend.on("GET", "/services", handler=unreachable)
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/services")
        assert exc.value.status_code == 502
        assert exc.value.message == ERROR_MESSAGES["NETWORK_ERROR"]


class TestRefresh:
    async def test_401_refreshes_once_and_replays(self, api, backend, session, store):
        backend.on("GET", "/services", responses=[(401, {"detail": "expired"}), (200, [{"id": 3}])])
        backend.on("POST", "/auth/refresh-token", json={"access_token": "new-token", "refresh_token": "new-refresh"})

        assert await api.get("/services") == [{"id": 3}]

        calls = backend.calls("GET", "/services")
        assert len(calls) == 2
        assert calls[1].headers["Authorization"] == "Bearer new-token"
        assert body(backend.last("POST", "/auth/refresh-token")) == {"refresh_token": "refresh-token"}

        saved = store.get(session.id)
        assert saved.access_token == "new-token"
        assert saved.refresh_token == "new-refresh"

    async def test_refresh_keeps_the_old_refresh_token_when_none_is_returned(self, api, backend, session):
        backend.on("GET", "/services", responses=[(401, None), (200, [])])
        backend.on("POST", "/auth/refresh-token", json={"access_token": "new-token"})
        await api.get("/services")
        assert session.refresh_token == "refresh-token"

    async def test_second_401_is_not_retried_again(self, api, backend):
        backend.on("GET", "/services", status=401)
        backend.on("POST", "/auth/refresh-token", json={"access_token": "new-token"})
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/services")
        assert exc.value.status_code == 401
        assert len(backend.calls("GET", "/services")) == 2
        assert len(backend.calls("POST", "/auth/refresh-token")) == 1

    async def test_failed_refresh_logs_out(self, api, backend, session, store):
        backend.on("GET", "/services", status=401)
        backend.on("POST", "/auth/refresh-token", status=401)
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/services")
        assert exc.value.status_code == 401
        assert exc.value.message == ERROR_MESSAGES["TOKEN_EXPIRED"]
        assert not session.is_authenticated
        assert not store.get(session.id).is_authenticated

    async def test_explicit_token_is_never_refreshed(self, api, backend):
        backend.on("GET", "/admin/integrations/health/7", status=401)
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/admin/integrations/health/7", access_token="watcher-token")
        assert exc.value.status_code == 401
        assert backend.calls("POST", "/auth/refresh-token") == []

    async def test_refresh_without_a_token_logs_out(self, api, backend, session, store):
        backend.on("GET", "/services", status=401)
        backend.on(
            "POST", "/auth/refresh-token", handler=lambda r: httpx.Response(200, text="<html>ok</html>")
        )
        with pytest.raises(BackendAPIError) as exc:
            await api.get("/services")
        assert exc.value.status_code == 401
        assert session.access_token is None
        assert not store.get(session.id).is_authenticated
        assert len(backend.calls("GET", "/services")) == 1

    async def test_refresh_body_missing_access_token_logs_out(self, api, backend, session):
        backend.on("GET", "/services", status=401)
        backend.on("POST", "/auth/refresh-token", json={"refresh_token": "only-refresh"})
        with pytest.raises(BackendAPIError):
            await api.get("/services")
        assert not session.is_authenticated

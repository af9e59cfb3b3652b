"""
Tests for the master-admin console: tenant oversight, barbershop creation,
impersonation, templates, failed events, metrics and integration health.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from conftest import MASTER_ADMIN, body
from salon_admin.domain.admin.service import (
    PASSWORD_ALPHABET,
    chart_data,
    generate_password,
    health_status,
    mailto_link,
)
from salon_admin.services.health_monitor import get_health_monitor

TENANTS = [
    {"id": 1, "business_name": "Fade Masters", "owner_email": "sam@fademasters.com",
     "stats": {"active_barbers": 5, "connected_calendars": 4}},
    {"id": 2, "business_name": "Clip Joint", "owner_name": "Lee Sharp",
     "stats": {"active_barbers": 4, "connected_calendars": 2}},
    {"id": 3, "business_name": "Old Shop", "is_active": False,
     "stats": {"active_barbers": 2, "connected_calendars": 2}},
    {"id": 4, "business_name": "Empty Chair", "stats": {"active_barbers": 0}},
]

BARBERSHOP = {
    "businessName": "Clip Joint",
    "businessType": "barbershop",
    "ownerFirstName": "Lee",
    "ownerLastName": "Sharp",
    "ownerEmail": "lee@clipjoint.com",
    "timezone": "America/Chicago",
}


@pytest.fixture
def admin(sign_in):
    return sign_in(user=MASTER_ADMIN, tenant=None)


class TestHelpers:
    def test_health_status(self):
        assert [health_status(t) for t in TENANTS] == [
            "Healthy",
            "Needs Attention",
            "Suspended",
            "Critical",
        ]
        assert health_status({"stats": {"active_barbers": 3, "connected_calendars": 1}}) == "Critical"

    def test_generated_passwords(self):
        password = generate_password()
        assert len(password) == 8
        assert set(password) <= set(PASSWORD_ALPHABET)
        assert not set(password) & set("0O1lI")

    def test_mailto_link_is_encoded(self):
        link = mailto_link("lee@clipjoint.com", "Line one\nLine two")
        assert link.startswith("mailto:lee@clipjoint.com?subject=Welcome%20to%20Avella%20AI")
        assert "body=Line%20one%0ALine%20two" in link

    def test_chart_data(self):
        metrics = {"daily_breakdown": {"2025-10-01": {"bookings": 4}, "2025-10-02": None}}
        assert chart_data(metrics) == [
            {"date": "2025-10-01", "bookings": 4, "cancellations": 0},
            {"date": "2025-10-02", "bookings": 0, "cancellations": 0},
        ]
        assert chart_data({}) == []


class TestAccess:
    def test_owners_are_rejected(self, client, sign_in):
        sign_in()
        response = client.get("/admin/tenants")
        assert response.status_code == 403
        assert response.json()["detail"] == "Master admin access required"

    def test_anonymous_is_rejected(self, client):
        assert client.get("/admin/tenants").status_code == 401


class TestTenants:
    def test_list_with_health(self, client, backend, admin):
        backend.on("GET", "/admin/tenants", json={"tenants": TENANTS})
        data = client.get("/admin/tenants").json()
        assert [t["health_status"] for t in data] == ["Healthy", "Needs Attention", "Suspended", "Critical"]
        assert "X-Tenant-ID" not in backend.last("GET", "/admin/tenants").headers

    def test_search(self, client, backend, admin):
        backend.on("GET", "/admin/tenants", json=TENANTS)
        assert [t["id"] for t in client.get("/admin/tenants", params={"search": "lee"}).json()] == [2]
        assert [t["id"] for t in client.get("/admin/tenants", params={"search": "SAM@"}).json()] == [1]

    def test_suspend_passes_the_reason(self, client, backend, admin):
        backend.on("POST", "/admin/tenants/2/suspend", json={})
        response = client.post("/admin/tenants/2/suspend", params={"reason": "unpaid"})
        assert response.json()["message"] == "Tenant suspended successfully"
        assert backend.last("POST", "/admin/tenants/2/suspend").url.params["reason"] == "unpaid"

    def test_suspend_without_reason(self, client, backend, admin):
        backend.on("POST", "/admin/tenants/2/suspend", json={})
        client.post("/admin/tenants/2/suspend")
        assert "reason" not in backend.last("POST", "/admin/tenants/2/suspend").url.params

    def test_unsuspend(self, client, backend, admin):
        backend.on("POST", "/admin/tenants/2/unsuspend", json={})
        assert client.post("/admin/tenants/2/unsuspend").json()["success"] is True

    def test_delete_requires_confirmation(self, client, backend, admin):
        backend.on("DELETE", "/admin/tenants/2")
        response = client.request("DELETE", "/admin/tenants/2", json={"confirm": "delete"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Deletion cancelled"
        assert backend.calls("DELETE", "/admin/tenants/2") == []

        confirmed = client.request("DELETE", "/admin/tenants/2", json={"confirm": "DELETE"})
        assert confirmed.json() == {"success": True, "message": "Tenant deleted successfully"}

    def test_delete_without_a_body_is_cancelled(self, client, backend, admin):
        backend.on("DELETE", "/admin/tenants/2")
        response = client.delete("/admin/tenants/2")
        assert response.status_code == 400
        assert response.json()["detail"] == "Deletion cancelled"
        assert backend.calls("DELETE", "/admin/tenants/2") == []


class TestCreateBarbershop:
    def _backend(self, backend, seed_status=200):
        backend.on("POST", "/auth/register", json={"id": 50})
        backend.on("POST", "/auth/login", json={"access_token": "owner-token"})
        backend.on("POST", "/tenants", json={"id": 12, "business_name": "Clip Joint"})
        backend.on("POST", "/services/initialize-default", status=seed_status, json={})

    def test_creates_owner_tenant_and_services(self, client, backend, admin):
        self._backend(backend)
        data = client.post("/admin/barbershops", json=BARBERSHOP).json()

        registered = body(backend.last("POST", "/auth/register"))
        assert registered["role"] == "tenant_owner"
        assert registered["password"] == registered["confirm_password"] == data["credentials"]["password"]
        assert "Authorization" not in backend.last("POST", "/auth/register").headers

        tenant_call = backend.last("POST", "/tenants")
        assert tenant_call.headers["Authorization"] == "Bearer owner-token"
        assert body(tenant_call)["timezone"] == "America/Chicago"

        seed = backend.last("POST", "/services/initialize-default")
        assert seed.headers["Authorization"] == "Bearer owner-token"
        assert seed.headers["X-Tenant-ID"] == "12"

        assert data["success"] is True
        assert "warning" not in data
        assert data["credentials"]["loginUrl"] == "http://frontend.test/login"
        assert data["credentials"]["password"] in data["email_body"]
        assert data["mailto"].startswith("mailto:lee@clipjoint.com?")

    def test_seed_failure_is_a_warning(self, client, backend, admin):
        self._backend(backend, seed_status=500)
        data = client.post("/admin/barbershops", json=BARBERSHOP).json()
        assert data["success"] is True
        assert data["warning"] == "Barbershop created but default services could not be initialized."

    def test_register_failure_stops_the_flow(self, client, backend, admin):
        backend.on("POST", "/auth/register", status=400, json={"detail": "Email already registered"})
        response = client.post("/admin/barbershops", json=BARBERSHOP)
        assert response.status_code == 400
        assert backend.calls("POST", "/tenants") == []

    def test_validation(self, client, admin):
        assert client.post("/admin/barbershops", json={**BARBERSHOP, "ownerEmail": "lee"}).status_code == 422
        assert client.post("/admin/barbershops", json={**BARBERSHOP, "businessName": " "}).status_code == 422


class TestImpersonation:
    def test_round_trip(self, client, backend, admin, store):
        backend.on("POST", "/admin/tenants/12/impersonate", json={"access_token": "imp-token"})
        backend.on("GET", "/clients", json=[])
        backend.on("GET", "/admin/tenants", json=[])

        response = client.post("/admin/tenants/12/impersonate")
        assert response.json() == {"success": True, "tenant_id": "12", "landing": "/dashboard"}
        impersonating = store.get(admin.id)
        assert impersonating.access_token == "imp-token"
        assert impersonating.refresh_token is None
        assert impersonating.user == MASTER_ADMIN

        client.get("/clients")
        scoped = backend.last("GET", "/clients")
        assert scoped.headers["X-Tenant-ID"] == "12"
        assert scoped.headers["Authorization"] == "Bearer imp-token"

        blocked = client.get("/admin/tenants")
        assert blocked.status_code == 409

        assert client.delete("/admin/impersonation").json() == {"success": True, "landing": "/admin"}
        restored = store.get(admin.id)
        assert restored.access_token == "access-token"
        assert restored.refresh_token == "refresh-token"
        assert restored.impersonation is None
        assert client.get("/admin/tenants").status_code == 200

    def test_stop_when_not_impersonating(self, client, admin):
        response = client.delete("/admin/impersonation")
        assert response.status_code == 400
        assert response.json()["detail"] == "Not impersonating a tenant"

    def test_missing_token(self, client, backend, admin):
        backend.on("POST", "/admin/tenants/12/impersonate", json={})
        assert client.post("/admin/tenants/12/impersonate").status_code == 502


class TestTemplates:
    TEMPLATES = [
        {"id": 1, "template_type": "sms_confirmation", "name": "Confirmation", "content": "Hi {{service}}"},
    ]

    def test_list_and_variables(self, client, backend, admin):
        backend.on("GET", "/admin/templates", json={"templates": self.TEMPLATES})
        assert client.get("/admin/templates", params={"tenant_id": "7"}).json() == self.TEMPLATES
        assert backend.last("GET", "/admin/templates").url.params["tenant_id"] == "7"
        names = [v["name"] for v in client.get("/admin/templates/variables").json()]
        assert "{{tenantName}}" in names

    def test_update(self, client, backend, admin):
        backend.on("PUT", "/admin/templates/1", json={})
        response = client.put("/admin/templates/1", json={"name": "Confirmation", "content": "Hello"})
        assert response.json() == {"success": True, "message": "Template updated successfully"}
        assert body(backend.last("PUT", "/admin/templates/1"))["is_active"] is True

    def test_override(self, client, backend, admin):
        backend.on("GET", "/admin/templates", json=self.TEMPLATES)
        backend.on("POST", "/admin/templates", json={"id": 2})
        response = client.post("/admin/templates/1/override", json={"tenant_id": "7"})
        assert response.json()["template"] == {"id": 2}
        sent = body(backend.last("POST", "/admin/templates"))
        assert sent == {
            "template_type": "sms_confirmation",
            "name": "Confirmation (7)",
            "content": "Hi {{service}}",
            "is_global": False,
            "tenant_id": "7",
        }

    def test_override_errors(self, client, backend, admin):
        backend.on("GET", "/admin/templates", json=self.TEMPLATES)
        assert client.post("/admin/templates/1/override", json={}).status_code == 400
        assert client.post("/admin/templates/5/override", json={"tenant_id": "7"}).status_code == 404


class TestEvents:
    def test_failed_events_filters(self, client, backend, admin):
        backend.on("GET", "/admin/events/failed", json={"events": [{"id": 3}]})
        assert client.get("/admin/events/failed", params={"integration": "all"}).json() == [{"id": 3}]
        assert "integration" not in backend.last("GET", "/admin/events/failed").url.params

        client.get("/admin/events/failed", params={"integration": "google_calendar", "tenant_id": "7"})
        params = backend.last("GET", "/admin/events/failed").url.params
        assert params["integration"] == "google_calendar"
        assert params["tenant_id"] == "7"

    def test_replay(self, client, backend, admin):
        backend.on("POST", "/admin/events/replay/3", json={"success": True})
        assert client.post("/admin/events/replay/3").json()["message"] == "Event replay initiated successfully"

    def test_replay_failure(self, client, backend, admin):
        backend.on("POST", "/admin/events/replay/3", json={"success": False, "error": "timeout"})
        response = client.post("/admin/events/replay/3")
        assert response.status_code == 502
        assert response.json()["detail"] == "Replay failed: timeout"


class TestMetrics:
    def test_metrics_with_chart_data(self, client, backend, admin):
        backend.on("GET", "/admin/metrics/7", json={"total_bookings": 4, "daily_breakdown": {"2025-10-01": {"bookings": 4}}})
        data = client.get("/admin/metrics/7", params={"days": 7}).json()
        assert data["total_bookings"] == 4
        assert data["chart_data"][0]["bookings"] == 4
        assert backend.last("GET", "/admin/metrics/7").url.params["days"] == "7"

    def test_only_known_windows(self, client, admin):
        assert client.get("/admin/metrics/7", params={"days": 14}).status_code == 400

    def test_csv_export(self, client, backend, admin):
        csv = b"date,bookings\n2025-10-01,4\n"
        backend.on(
            "GET",
            "/admin/metrics/7/export",
            handler=lambda request: httpx.Response(200, content=csv, headers={"content-type": "text/csv"}),
        )
        response = client.get(
            "/admin/metrics/7/export", params={"start_date": "2025-10-01", "end_date": "2025-10-31"}
        )
        assert response.content == csv
        assert response.headers["content-type"].startswith("text/csv")
        assert (
            response.headers["content-disposition"]
            == "attachment; filename=metrics_7_2025-10-01_2025-10-31.csv"
        )

    def test_csv_export_filename_is_sanitized(self, client, backend, admin):
        backend.on(
            "GET",
            "/admin/metrics/7/export",
            handler=lambda request: httpx.Response(200, content=b"date\n"),
        )
        response = client.get(
            "/admin/metrics/7/export",
            params={"start_date": '2025-10-01"; x=1', "end_date": "2025/10/31"},
        )
        assert (
            response.headers["content-disposition"]
            == "attachment; filename=metrics_7_2025-10-01___x_1_2025_10_31.csv"
        )


class TestIntegrationHealth:
    def test_latest_after_fetch(self, client, backend, admin):
        backend.on("GET", "/admin/integrations/health/7", json={"google_calendar": {"status": "ok"}})
        latest = client.get("/admin/integrations/health/7/latest")
        assert latest.status_code == 404
        assert latest.json()["detail"] == "No health snapshot available yet"

        assert client.get("/admin/integrations/health/7").json() == {"google_calendar": {"status": "ok"}}
        assert client.get("/admin/integrations/health/7/latest").json() == {"google_calendar": {"status": "ok"}}

    def test_watch_and_unwatch(self, client, admin):
        from salon_admin.main import app

        fake = MagicMock()
        fake.start.return_value = True
        fake.stop = AsyncMock(return_value=True)
        fake.interval = 30
        app.dependency_overrides[get_health_monitor] = lambda: fake

        watched = client.post("/admin/integrations/health/7/watch").json()
        assert watched == {"watching": True, "started": True, "interval_seconds": 30}
        _, tenant_id, token = fake.start.call_args.args
        assert (tenant_id, token) == ("7", "access-token")

        assert client.delete("/admin/integrations/health/7/watch").json() == {"watching": False, "stopped": True}
        fake.stop.assert_awaited_once_with("7")

    def test_reauth(self, client, admin):
        response = client.get("/admin/integrations/health/7/reauth/google_calendar")
        assert response.json() == {"url": "http://backend.test/auth/google/authorize?tenant_id=7"}

        unsupported = client.get("/admin/integrations/health/7/reauth/twilio")
        assert unsupported.status_code == 400
        assert unsupported.json()["detail"] == "Re-authorization is not supported for twilio"

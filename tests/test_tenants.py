"""
Tests for the tenant context: listing, switching, creation and business setup.
"""

from conftest import TENANT, body
from salon_admin.domain.tenants.service import SERVICES_INIT_WARNING, tenant_timezone

SECOND = {"id": 8, "business_name": "Clip Joint", "timezone": "America/Chicago"}
NEW_TENANT = {"business_name": "Clip Joint", "business_type": "barbershop", "timezone": "Central Time"}


class TestListAndSwitch:
    def test_first_tenant_is_auto_selected(self, client, backend, sign_in, store):
        session = sign_in(tenant=None)
        backend.on("GET", "/tenants/my", json={"tenants": [TENANT, SECOND]})
        data = client.get("/tenants").json()
        assert data["current_tenant"] == TENANT
        assert store.get(session.id).tenants == [TENANT, SECOND]

    def test_active_tenant_is_refreshed(self, client, backend, sign_in):
        sign_in(current_tenant=SECOND, tenants=[TENANT, SECOND])
        renamed = {**SECOND, "business_name": "Clip Joint II"}
        backend.on("GET", "/tenants/my", json=[TENANT, renamed])
        assert client.get("/tenants").json()["current_tenant"] == renamed

    def test_switch(self, client, sign_in, store):
        session = sign_in(tenants=[TENANT, SECOND])
        response = client.post("/tenants/switch", json={"tenant_id": "8"})
        assert response.json()["current_tenant"] == SECOND
        assert store.get(session.id).tenant_id == "8"

    def test_switch_to_unknown_tenant(self, client, sign_in):
        sign_in()
        assert client.post("/tenants/switch", json={"tenant_id": "404"}).status_code == 404

    def test_tenant_routes_need_an_active_tenant(self, client, sign_in):
        sign_in(tenant=None)
        response = client.get("/clients")
        assert response.status_code == 409


class TestCreate:
    def test_first_tenant_becomes_active(self, client, backend, sign_in, store):
        session = sign_in(tenant=None)
        backend.on("POST", "/tenants", json=SECOND)
        response = client.post("/tenants", json=NEW_TENANT)
        assert response.status_code == 200
        assert body(backend.last("POST", "/tenants"))["timezone"] == "America/Chicago"
        assert store.get(session.id).current_tenant == SECOND

    def test_additional_tenant_keeps_the_active_one(self, client, backend, sign_in, store):
        session = sign_in()
        backend.on("POST", "/tenants", json=SECOND)
        client.post("/tenants", json=NEW_TENANT)
        saved = store.get(session.id)
        assert saved.current_tenant == TENANT
        assert saved.tenants == [TENANT, SECOND]

    def test_validation(self, client, sign_in):
        sign_in()
        assert client.post("/tenants", json={**NEW_TENANT, "business_type": "gym"}).status_code == 422
        assert client.post("/tenants", json={**NEW_TENANT, "business_name": "  "}).status_code == 422


class TestSetup:
    def test_setup_seeds_default_services(self, client, backend, sign_in):
        sign_in(tenant=None)
        backend.on("POST", "/tenants", json=SECOND)
        backend.on("POST", "/services/initialize-default", json={})
        data = client.post("/tenants/setup", json=NEW_TENANT).json()
        assert data == {"success": True, "step": 3, "tenant": SECOND}
        assert backend.last("POST", "/services/initialize-default").headers["X-Tenant-ID"] == "8"

    def test_seed_failure_is_only_a_warning(self, client, backend, sign_in):
        sign_in(tenant=None)
        backend.on("POST", "/tenants", json=SECOND)
        backend.on("POST", "/services/initialize-default", status=500)
        data = client.post("/tenants/setup", json=NEW_TENANT).json()
        assert data["step"] == 2
        assert data["warning"] == SERVICES_INIT_WARNING

    def test_create_failure_propagates(self, client, backend, sign_in):
        sign_in(tenant=None)
        backend.on("POST", "/tenants", status=400, json={"detail": "Business name taken"})
        response = client.post("/tenants/setup", json=NEW_TENANT)
        assert response.status_code == 400
        assert response.json()["detail"] == "Business name taken"


def test_update_tenant_refreshes_the_session(client, backend, sign_in, store):
    session = sign_in()
    updated = {**TENANT, "business_name": "Fade Masters Deluxe"}
    backend.on("PUT", "/tenants/7", json=updated)
    response = client.put("/tenants/7", json={"business_name": "Fade Masters Deluxe"})
    assert response.json()["tenant"] == updated
    assert body(backend.last("PUT", "/tenants/7")) == {"business_name": "Fade Masters Deluxe"}
    assert store.get(session.id).current_tenant == updated


def test_unknown_tenant_timezone_uses_the_default(session):
    session.current_tenant = {"id": 7, "timezone": "Mars/Olympus"}
    assert tenant_timezone(session) == "America/New_York"
    session.current_tenant = {"id": 7, "timezone": "Asia/Karachi"}
    assert tenant_timezone(session) == "Asia/Karachi"
    session.current_tenant = None
    assert tenant_timezone(session) == "America/New_York"

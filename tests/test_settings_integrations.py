"""
Tests for business settings and the calendar integrations page.
"""

from conftest import TENANT, body

CONNECTED_TENANT = {
    **TENANT,
    "google_calendar_integration": {"connected": True, "last_sync": "2025-10-22T15:00:00Z"},
}


class TestSettings:
    def test_settings_reflect_the_active_tenant(self, client, sign_in):
        sign_in()
        data = client.get("/settings").json()
        assert data["business"]["businessName"] == "Fade Masters"
        assert data["business"]["businessType"] == "barbershop"
        assert data["business"]["timezone"] == "America/New_York"
        assert data["hours"]["sunday"]["enabled"] is False
        assert {"value": "barbershop", "label": "Barbershop"} in data["business_types"]

    def test_update_business(self, client, backend, sign_in, store):
        session = sign_in()
        updated = {**TENANT, "business_name": "Fade Masters Deluxe", "timezone": "America/Chicago"}
        backend.on("PUT", "/tenants/7", json=updated)

        response = client.put(
            "/settings/business",
            json={"businessName": " Fade Masters Deluxe ", "businessType": "barbershop", "timezone": "Central Time"},
        )

        assert response.json()["message"] == "Business information updated successfully!"
        assert response.json()["business"]["timezone"] == "America/Chicago"
        sent = body(backend.last("PUT", "/tenants/7"))
        assert sent["business_name"] == "Fade Masters Deluxe"
        assert sent["timezone"] == "America/Chicago"
        assert store.get(session.id).current_tenant == updated

    def test_update_validation(self, client, backend, sign_in):
        sign_in()
        assert client.put("/settings/business", json={"businessName": "   "}).status_code == 422
        assert client.put("/settings/business", json={"businessName": "X", "businessType": "gym"}).status_code == 422
        assert client.put("/settings/business", json={"businessName": "X", "timezone": "Mars/Olympus"}).status_code == 422
        assert backend.calls("PUT", "/tenants/7") == []


class TestIntegrations:
    def test_list(self, client, sign_in):
        sign_in(tenant=CONNECTED_TENANT)
        data = client.get("/integrations").json()
        google, microsoft = data["integrations"]
        assert google["status"] == "connected"
        assert google["last_sync"] == "2025-10-22T15:00:00Z"
        assert microsoft["status"] == "disconnected"
        assert (data["connected"], data["disconnected"]) == (1, 1)

    def test_connect(self, client, backend, sign_in):
        sign_in()
        backend.on("POST", "/tenant/connect-calendar", json={"authUrl": "https://accounts.google.com/o"})
        response = client.post("/integrations/google-calendar/connect")
        assert response.json() == {"authUrl": "https://accounts.google.com/o"}

    def test_connect_without_url(self, client, backend, sign_in):
        sign_in()
        backend.on("POST", "/tenant/connect-microsoft-calendar", json={"ok": True})
        response = client.post("/integrations/microsoft-calendar/connect")
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to initiate Microsoft OAuth"

    def test_disconnect(self, client, backend, sign_in):
        sign_in(tenant=CONNECTED_TENANT)
        backend.on("POST", "/tenant/disconnect-calendar", json={})
        assert client.post("/integrations/google-calendar/disconnect").json() == {"success": True}

    def test_unknown_integration(self, client, sign_in):
        sign_in()
        response = client.post("/integrations/outlook/connect")
        assert response.status_code == 404
        assert response.json()["detail"] == "Integration not found"

"""Master-admin service - tenant oversight, barbershop creation and impersonation"""

import logging
import secrets
from typing import Any, Optional
from urllib.parse import quote

from fastapi import HTTPException

from ...backend_client import BackendClient
from ...config import BACKEND_URL, FRONTEND_URL
from ...sessions import Impersonation, SessionData, SessionStore
from ...shared.listing import as_list, contains
from ...utils.errors import handle_api_call
from ..tenants.service import TenantService
from .schemas import BarbershopCreate, TemplateOverride, TemplateUpdate

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
PASSWORD_LENGTH = 8
OWNER_ROLE = "tenant_owner"

WELCOME_SUBJECT = "Welcome to Avella AI - Login Credentials"

TEMPLATE_VARIABLES = [
    {"name": "{{tenantName}}", "description": "Business name"},
    {"name": "{{service}}", "description": "Service name"},
    {"name": "{{date}}", "description": "Appointment date"},
    {"name": "{{time}}", "description": "Appointment time"},
    {"name": "{{addr}}", "description": "Business address"},
    {"name": "{{link}}", "description": "Booking management link"},
    {"name": "{{cancelPolicy}}", "description": "Cancellation policy"},
]

REAUTH_INTEGRATIONS = ("google_calendar", "google")
METRIC_WINDOWS = (7, 30, 90)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def health_status(tenant: dict) -> str:
    """Share of active barbers with a connected calendar"""
    if not tenant.get("is_active", True):
        return "Suspended"

    stats = tenant.get("stats") or {}
    barbers = stats.get("active_barbers") or 0
    if barbers <= 0:
        return "Critical"

    score = (stats.get("connected_calendars") or 0) / barbers * 100
    if score >= 80:
        return "Healthy"
    if score >= 50:
        return "Needs Attention"
    return "Critical"


def matches_search(tenant: dict, search: str) -> bool:
    return (
        contains(tenant.get("business_name"), search)
        or contains(tenant.get("owner_name"), search)
        or contains(tenant.get("owner_email"), search)
    )


def welcome_email(credentials: dict[str, str]) -> str:
    return (
        "Welcome to Avella AI!\n\n"
        f'Your barbershop "{credentials["businessName"]}" has been set up successfully.\n\n'
        "Login Details:\n"
        f"Email: {credentials['email']}\n"
        f"Password: {credentials['password']}\n"
        f"Login URL: {credentials['loginUrl']}\n\n"
        "You can now login to manage your appointments, barbers, "
        "and connect your Google Calendars.\n\n"
        "Best regards,\n"
        "Avella AI Team"
    )


def mailto_link(email: str, body: str) -> str:
    return f"mailto:{email}?subject={quote(WELCOME_SUBJECT)}&body={quote(body, safe='')}"


def google_reauth_url(tenant_id: str) -> str:
    return f"{BACKEND_URL}/auth/google/authorize?tenant_id={quote(str(tenant_id), safe='')}"


def chart_data(metrics: dict) -> list[dict[str, Any]]:
    breakdown = metrics.get("daily_breakdown") or {}
    return [
        {
            "date": day,
            "bookings": (values or {}).get("bookings", 0),
            "cancellations": (values or {}).get("cancellations", 0),
        }
        for day, values in breakdown.items()
    ]


class AdminService:
    """Console operations performed with the master admin's own token"""

    def __init__(self, backend: BackendClient, session: SessionData, store: SessionStore):
        self.backend = backend
        self.session = session
        self.store = store

    # Tenants

    async def list_tenants(self, search: Optional[str] = None) -> list[dict]:
        data = await self.backend.get(
            "/admin/tenants", tenant_scoped=False, error_message="Failed to load tenants"
        )
        tenants = as_list(data, "tenants")
        if search:
            tenants = [t for t in tenants if matches_search(t, search)]
        return [{**t, "health_status": health_status(t)} for t in tenants]

    async def system_overview(self) -> dict:
        return await self.backend.get(
            "/admin/system-overview", tenant_scoped=False, error_message="Failed to load overview"
        )

    async def create_barbershop(self, data: BarbershopCreate) -> dict[str, Any]:
        """
        Register the owner, log in as them, create their tenant and seed services.

        Only the service seeding may fail softly; it is reported as a warning.
        """
        password = generate_password()
        owner_name = f"{data.ownerFirstName} {data.ownerLastName}"
        logger.info(f"📥 Creating barbershop {data.businessName} for {data.ownerEmail}")

        public = BackendClient(self.backend.http_client)
        await public.post(
            "/auth/register",
            json={
                "first_name": data.ownerFirstName,
                "last_name": data.ownerLastName,
                "email": data.ownerEmail,
                "phone": data.ownerPhone,
                "password": password,
                "confirm_password": password,
                "role": OWNER_ROLE,
            },
            tenant_scoped=False,
            error_message="Failed to create owner account",
        )

        login = await public.post(
            "/auth/login",
            json={"email": data.ownerEmail, "password": password},
            tenant_scoped=False,
            error_message="Failed to sign in as the new owner",
        )
        owner_token = (login or {}).get("access_token")
        if not owner_token:
            raise HTTPException(status_code=502, detail="Failed to sign in as the new owner")

        tenant = await self.backend.post(
            "/tenants",
            json={
                "business_name": data.businessName,
                "business_type": data.businessType,
                "address": data.address,
                "phone": data.phone,
                "website": data.website,
                "timezone": data.timezone,
            },
            access_token=owner_token,
            tenant_scoped=False,
            error_message="Failed to create business",
        )
        tenant_id = str((tenant or {}).get("id"))

        seeded = await handle_api_call(
            lambda: TenantService(self.backend, self.session, self.store).initialize_default_services(
                access_token=owner_token, tenant_id=tenant_id
            ),
            "Failed to initialize services",
        )

        credentials = {
            "businessName": data.businessName,
            "ownerName": owner_name,
            "email": data.ownerEmail,
            "password": password,
            "loginUrl": f"{FRONTEND_URL}/login",
        }
        body = welcome_email(credentials)
        logger.info(f"✅ Barbershop created: tenant {tenant_id}")

        result = {
            "success": True,
            "tenant": tenant,
            "credentials": credentials,
            "email_body": body,
            "mailto": mailto_link(data.ownerEmail, body),
        }
        if not seeded["success"]:
            result["warning"] = (
                "Barbershop created but default services could not be initialized."
            )
        return result

    async def suspend_tenant(self, tenant_id: str, reason: Optional[str] = None) -> dict:
        await self.backend.post(
            f"/admin/tenants/{tenant_id}/suspend",
            params={"reason": reason},
            tenant_scoped=False,
            error_message="Failed to suspend tenant",
        )
        logger.info(f"⛔ Tenant {tenant_id} suspended")
        return {"success": True, "message": "Tenant suspended successfully"}

    async def unsuspend_tenant(self, tenant_id: str) -> dict:
        await self.backend.post(
            f"/admin/tenants/{tenant_id}/unsuspend",
            json={},
            tenant_scoped=False,
            error_message="Failed to unsuspend tenant",
        )
        logger.info(f"✅ Tenant {tenant_id} unsuspended")
        return {"success": True, "message": "Tenant unsuspended successfully"}

    async def delete_tenant(self, tenant_id: str, confirm: str) -> dict:
        if confirm != "DELETE":
            raise HTTPException(status_code=400, detail="Deletion cancelled")
        await self.backend.delete(
            f"/admin/tenants/{tenant_id}",
            tenant_scoped=False,
            error_message="Failed to delete tenant",
        )
        logger.info(f"🗑️ Tenant {tenant_id} deleted")
        return {"success": True, "message": "Tenant deleted successfully"}

    # Impersonation

    async def impersonate(self, tenant_id: str) -> dict:
        data = await self.backend.post(
            f"/admin/tenants/{tenant_id}/impersonate",
            json={},
            tenant_scoped=False,
            error_message="Failed to impersonate tenant",
        )
        token = (data or {}).get("access_token")
        if not token:
            raise HTTPException(status_code=502, detail="Failed to impersonate tenant")

        self.session.impersonation = Impersonation(
            tenant_id=str(tenant_id),
            admin_access_token=self.session.access_token,
            admin_refresh_token=self.session.refresh_token,
            admin_user=self.session.user,
        )
        # Impersonation tokens are not refreshable
        self.session.store_tokens(token, None)
        self.store.save(self.session)
        logger.info(f"🎭 Master admin impersonating tenant {tenant_id}")
        return {"success": True, "tenant_id": str(tenant_id), "landing": "/dashboard"}

    def stop_impersonation(self) -> dict:
        stash = self.session.impersonation
        if stash is None:
            raise HTTPException(status_code=400, detail="Not impersonating a tenant")

        self.session.store_tokens(stash.admin_access_token, stash.admin_refresh_token)
        self.session.user = stash.admin_user
        self.session.impersonation = None
        self.store.save(self.session)
        logger.info(f"🎭 Impersonation of tenant {stash.tenant_id} ended")
        return {"success": True, "landing": "/admin"}

    # Templates

    async def list_templates(self, tenant_id: Optional[str] = None) -> list[dict]:
        data = await self.backend.get(
            "/admin/templates",
            params={"tenant_id": tenant_id or None},
            tenant_scoped=False,
            error_message="Failed to load templates",
        )
        return as_list(data, "templates")

    async def update_template(self, template_id: str, data: TemplateUpdate) -> dict:
        return await self.backend.put(
            f"/admin/templates/{template_id}",
            json=data.model_dump(),
            tenant_scoped=False,
            error_message="Failed to save template",
        )

    async def create_override(self, template_id: str, data: TemplateOverride) -> dict:
        """Copy a global template into a tenant-specific override"""
        if not data.tenant_id:
            raise HTTPException(status_code=400, detail="Please select a tenant first")

        templates = await self.list_templates()
        template = next((t for t in templates if str(t.get("id")) == str(template_id)), None)
        if template is None:
            raise HTTPException(status_code=404, detail="Template not found")

        override = await self.backend.post(
            "/admin/templates",
            json={
                "template_type": template.get("template_type"),
                "name": f"{template.get('name')} ({data.tenant_id})",
                "content": template.get("content"),
                "is_global": False,
                "tenant_id": data.tenant_id,
            },
            tenant_scoped=False,
            error_message="Failed to create override",
        )
        logger.info(f"✅ Template {template_id} overridden for tenant {data.tenant_id}")
        return override

    # Failed events

    async def failed_events(
        self, tenant_id: Optional[str] = None, integration: Optional[str] = None
    ) -> list[dict]:
        data = await self.backend.get(
            "/admin/events/failed",
            params={
                "tenant_id": tenant_id or None,
                "integration": None if integration in (None, "", "all") else integration,
            },
            tenant_scoped=False,
            error_message="Failed to load failed events",
        )
        return as_list(data, "events")

    async def replay_event(self, event_id: str) -> dict:
        result = await self.backend.post(
            f"/admin/events/replay/{event_id}",
            json={},
            tenant_scoped=False,
            error_message="Failed to replay event",
        )
        result = result or {}
        if not result.get("success"):
            logger.error(f"❌ Replay of event {event_id} failed: {result.get('error')}")
            raise HTTPException(status_code=502, detail=f"Replay failed: {result.get('error')}")
        logger.info(f"🔄 Event {event_id} replay initiated")
        return {"success": True, "message": "Event replay initiated successfully"}

    # Metrics

    async def metrics(self, tenant_id: str, days: int) -> dict:
        data = await self.backend.get(
            f"/admin/metrics/{tenant_id}",
            params={"days": days},
            tenant_scoped=False,
            error_message="Failed to load metrics",
        )
        data = data or {}
        return {**data, "chart_data": chart_data(data)}

    async def export_metrics(self, tenant_id: str, start_date: str, end_date: str):
        """Raw backend response carrying the CSV export"""
        return await self.backend.get(
            f"/admin/metrics/{tenant_id}/export",
            params={"start_date": start_date, "end_date": end_date},
            tenant_scoped=False,
            raw=True,
            error_message="Failed to export metrics",
        )

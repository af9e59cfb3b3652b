"""Tenant service - active tenant tracking and tenant CRUD against the backend"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...backend_client import BackendClient
from ...config import DEFAULT_TENANT_TIMEZONE
from ...sessions import SessionData, SessionStore
from ...shared.listing import as_list
from ...shared.validators import validate_iana_timezone
from ...utils.errors import handle_api_call
from .schemas import TenantCreate, TenantUpdate

logger = logging.getLogger(__name__)

SERVICES_INIT_WARNING = (
    "Business created but failed to initialize services. You can add them manually."
)


def tenant_timezone(session: SessionData) -> str:
    """Timezone of the active tenant"""
    tenant = session.current_tenant or {}
    timezone = tenant.get("timezone")
    if not timezone:
        return DEFAULT_TENANT_TIMEZONE
    if not validate_iana_timezone(timezone):
        logger.warning(f"⚠️ Tenant {tenant.get('id')} has unknown timezone {timezone!r}")
        return DEFAULT_TENANT_TIMEZONE
    return timezone


class TenantService:
    """Keeps the session's tenant list and active tenant in step with the backend"""

    def __init__(self, backend: BackendClient, session: SessionData, store: SessionStore):
        self.backend = backend
        self.session = session
        self.store = store

    async def fetch_tenants(self) -> list[dict]:
        """Reload accessible tenants and auto-select the first when none is active"""
        data = await self.backend.get("/tenants/my", tenant_scoped=False)
        tenants = as_list(data, "tenants")
        self.session.tenants = tenants

        if self.session.current_tenant:
            # Keep the active tenant's data fresh
            refreshed = self.session.find_tenant(self.session.current_tenant.get("id"))
            if refreshed:
                self.session.current_tenant = refreshed
        elif tenants:
            self.session.current_tenant = tenants[0]

        self.store.save(self.session)
        logger.info(f"✅ Loaded {len(tenants)} tenants")
        return tenants

    async def create_tenant(self, data: TenantCreate) -> dict:
        logger.info(f"📥 Creating tenant: {data.business_name}")
        tenant = await self.backend.post(
            "/tenants",
            json=data.model_dump(),
            tenant_scoped=False,
            error_message="Failed to create tenant",
        )
        was_empty = not self.session.tenants
        self.session.tenants = [*self.session.tenants, tenant]
        if was_empty:
            self.session.current_tenant = tenant
        self.store.save(self.session)
        logger.info(f"✅ Tenant created: {tenant.get('id')}")
        return tenant

    async def update_tenant(self, tenant_id: str, data: TenantUpdate) -> dict:
        updated = await self.backend.put(
            f"/tenants/{tenant_id}",
            json=data.model_dump(exclude_unset=True),
            error_message="Failed to update tenant",
        )
        self.session.tenants = [
            updated if str(t.get("id")) == str(tenant_id) else t for t in self.session.tenants
        ]
        current = self.session.current_tenant
        if current and str(current.get("id")) == str(tenant_id):
            self.session.current_tenant = updated
        self.store.save(self.session)
        return updated

    def switch_tenant(self, tenant_id: str) -> dict:
        tenant = self.session.find_tenant(tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        self.session.current_tenant = tenant
        self.store.save(self.session)
        logger.info(f"🔄 Switched active tenant to {tenant_id}")
        return tenant

    async def initialize_default_services(
        self, access_token: Optional[str] = None, tenant_id: Optional[str] = None
    ) -> dict:
        await self.backend.post(
            "/services/initialize-default",
            access_token=access_token,
            tenant_id=tenant_id,
            error_message="Failed to initialize services",
        )
        return {"success": True, "message": "Default services initialized"}

    async def setup_business(self, data: TenantCreate) -> dict:
        """Create the business, then seed its default services.

        A failed create propagates; a failed seed only downgrades to a warning.
        """
        tenant = await self.create_tenant(data)

        result = await handle_api_call(
            lambda: self.initialize_default_services(tenant_id=str(tenant.get("id"))),
            "Failed to initialize services",
        )
        if not result["success"]:
            return {"success": True, "step": 2, "tenant": tenant, "warning": SERVICES_INIT_WARNING}
        return {"success": True, "step": 3, "tenant": tenant}

"""Master-admin console router"""

import logging
import re
from typing import Optional

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from ...auth import get_backend, get_http_client, get_session_store, require_master_admin, require_session
from ...backend_client import BackendClient
from ...sessions import SessionData, SessionStore
from ...services.health_monitor import HealthMonitor, get_health_monitor
from .schemas import BarbershopCreate, DeleteTenantRequest, TemplateOverride, TemplateUpdate
from .service import (
    METRIC_WINDOWS,
    REAUTH_INTEGRATIONS,
    TEMPLATE_VARIABLES,
    AdminService,
    google_reauth_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Master Admin"])


async def require_admin_console(session: SessionData = Depends(require_session)) -> SessionData:
    """Master admin acting as themselves; impersonation must be stopped first"""
    if session.is_impersonating:
        raise HTTPException(
            status_code=409, detail="Stop impersonating the tenant to use the admin console"
        )
    return await require_master_admin(session)


def get_admin_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_admin_console),
    store: SessionStore = Depends(get_session_store),
) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(backend, session, store)


# ============================================================================
# TENANTS
# ============================================================================


@router.get("/tenants")
async def list_tenants(
    search: Optional[str] = Query(None, description="Business name, owner name or owner email"),
    service: AdminService = Depends(get_admin_service),
):
    return await service.list_tenants(search)


@router.get("/system-overview")
async def system_overview(service: AdminService = Depends(get_admin_service)):
    return await service.system_overview()


@router.post("/barbershops")
async def create_barbershop(
    data: BarbershopCreate, service: AdminService = Depends(get_admin_service)
):
    """Create a barbershop and its owner; the response carries the owner's credentials"""
    return await service.create_barbershop(data)


@router.post("/tenants/{tenant_id}/impersonate")
async def impersonate_tenant(tenant_id: str, service: AdminService = Depends(get_admin_service)):
    return await service.impersonate(tenant_id)


@router.delete("/impersonation")
async def stop_impersonation(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
):
    return AdminService(backend, session, store).stop_impersonation()


@router.post("/tenants/{tenant_id}/suspend")
async def suspend_tenant(
    tenant_id: str,
    reason: Optional[str] = Query(None),
    service: AdminService = Depends(get_admin_service),
):
    return await service.suspend_tenant(tenant_id, reason)


@router.post("/tenants/{tenant_id}/unsuspend")
async def unsuspend_tenant(tenant_id: str, service: AdminService = Depends(get_admin_service)):
    return await service.unsuspend_tenant(tenant_id)


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: str,
    data: Optional[DeleteTenantRequest] = Body(None),
    service: AdminService = Depends(get_admin_service),
):
    """Permanently delete a tenant; the body must carry {"confirm": "DELETE"}"""
    return await service.delete_tenant(tenant_id, data.confirm if data else "")


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates")
async def list_templates(
    tenant_id: Optional[str] = Query(None), service: AdminService = Depends(get_admin_service)
):
    return await service.list_templates(tenant_id)


@router.get("/templates/variables")
async def template_variables(_: SessionData = Depends(require_admin_console)):
    return TEMPLATE_VARIABLES


@router.put("/templates/{template_id}")
async def update_template(
    template_id: str, data: TemplateUpdate, service: AdminService = Depends(get_admin_service)
):
    await service.update_template(template_id, data)
    return {"success": True, "message": "Template updated successfully"}


@router.post("/templates/{template_id}/override")
async def create_template_override(
    template_id: str, data: TemplateOverride, service: AdminService = Depends(get_admin_service)
):
    override = await service.create_override(template_id, data)
    return {"success": True, "message": "Tenant override created successfully", "template": override}


# ============================================================================
# INTEGRATION HEALTH
# ============================================================================


@router.get("/integrations/health/{tenant_id}")
async def integration_health(
    tenant_id: str,
    backend: BackendClient = Depends(get_backend),
    _: SessionData = Depends(require_admin_console),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    return await monitor.fetch(backend, tenant_id)


@router.get("/integrations/health/{tenant_id}/latest")
async def latest_integration_health(
    tenant_id: str,
    _: SessionData = Depends(require_admin_console),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    snapshot = monitor.latest(tenant_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No health snapshot available yet")
    return snapshot


@router.post("/integrations/health/{tenant_id}/watch")
async def watch_integration_health(
    tenant_id: str,
    session: SessionData = Depends(require_admin_console),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    """Refresh the tenant's health snapshot in the background until stopped"""
    started = monitor.start(BackendClient(http_client), tenant_id, session.access_token)
    return {"watching": True, "started": started, "interval_seconds": monitor.interval}


@router.delete("/integrations/health/{tenant_id}/watch")
async def unwatch_integration_health(
    tenant_id: str,
    _: SessionData = Depends(require_admin_console),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    stopped = await monitor.stop(tenant_id)
    return {"watching": False, "stopped": stopped}


@router.get("/integrations/health/{tenant_id}/reauth/{integration}")
async def reauth_integration(
    tenant_id: str, integration: str, _: SessionData = Depends(require_admin_console)
):
    if integration not in REAUTH_INTEGRATIONS:
        raise HTTPException(
            status_code=400, detail=f"Re-authorization is not supported for {integration}"
        )
    return {"url": google_reauth_url(tenant_id)}


# ============================================================================
# FAILED EVENTS
# ============================================================================


@router.get("/events/failed")
async def failed_events(
    tenant_id: Optional[str] = Query(None),
    integration: Optional[str] = Query(None, description="'all' disables the filter"),
    service: AdminService = Depends(get_admin_service),
):
    return await service.failed_events(tenant_id, integration)


@router.post("/events/replay/{event_id}")
async def replay_event(event_id: str, service: AdminService = Depends(get_admin_service)):
    return await service.replay_event(event_id)


# ============================================================================
# METRICS
# ============================================================================


@router.get("/metrics/{tenant_id}")
async def tenant_metrics(
    tenant_id: str,
    days: int = Query(30, description="7, 30 or 90"),
    service: AdminService = Depends(get_admin_service),
):
    if days not in METRIC_WINDOWS:
        raise HTTPException(status_code=400, detail="Days must be 7, 30 or 90")
    return await service.metrics(tenant_id, days)


def _filename_part(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9.-]", "_", value)


@router.get("/metrics/{tenant_id}/export")
async def export_tenant_metrics(
    tenant_id: str,
    start_date: str = Query(...),
    end_date: str = Query(...),
    service: AdminService = Depends(get_admin_service),
):
    response = await service.export_metrics(tenant_id, start_date, end_date)
    parts = (_filename_part(p) for p in (tenant_id, start_date, end_date))
    filename = "metrics_{}_{}_{}.csv".format(*parts)
    logger.info(f"📤 Exporting metrics for tenant {tenant_id}")
    return StreamingResponse(
        iter([response.content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )

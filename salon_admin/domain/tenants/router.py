"""Tenant router - FastAPI endpoints for the tenant context"""

import logging

from fastapi import APIRouter, Depends

from ...auth import get_backend, get_session_store, require_session, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData, SessionStore
from .schemas import TenantCreate, TenantSwitch, TenantUpdate
from .service import TenantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


def get_tenant_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
) -> TenantService:
    """Dependency injection for TenantService"""
    return TenantService(backend, session, store)


@router.get("")
async def list_tenants(service: TenantService = Depends(get_tenant_service)):
    """Refresh accessible tenants and report the active one"""
    tenants = await service.fetch_tenants()
    return {"tenants": tenants, "current_tenant": service.session.current_tenant}


@router.post("")
async def create_tenant(data: TenantCreate, service: TenantService = Depends(get_tenant_service)):
    tenant = await service.create_tenant(data)
    return {"success": True, "tenant": tenant}


@router.post("/switch")
async def switch_tenant(data: TenantSwitch, service: TenantService = Depends(get_tenant_service)):
    tenant = service.switch_tenant(data.tenant_id)
    return {"success": True, "current_tenant": tenant}


@router.post("/setup")
async def setup_business(data: TenantCreate, service: TenantService = Depends(get_tenant_service)):
    """Create the business and initialize its default services"""
    return await service.setup_business(data)


@router.post("/initialize-default-services")
async def initialize_default_services(
    _: SessionData = Depends(require_tenant),
    service: TenantService = Depends(get_tenant_service),
):
    return await service.initialize_default_services()


@router.put("/{tenant_id}")
async def update_tenant(
    tenant_id: str, data: TenantUpdate, service: TenantService = Depends(get_tenant_service)
):
    tenant = await service.update_tenant(tenant_id, data)
    return {"success": True, "tenant": tenant}

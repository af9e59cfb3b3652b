"""Catalog router - FastAPI endpoints for the services view"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_backend, get_session_store, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData, SessionStore
from ..tenants.service import TenantService
from .schemas import ServiceCreate, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(
    backend: BackendClient = Depends(get_backend),
    _: SessionData = Depends(require_tenant),
) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(backend)


@router.get("")
async def list_services(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    service: CatalogService = Depends(get_catalog_service),
):
    """Services sorted by category then name, grouped, with catalog stats"""
    return await service.list_services(search, category)


@router.post("")
async def create_service(data: ServiceCreate, service: CatalogService = Depends(get_catalog_service)):
    return await service.create_service(data)


@router.post("/initialize-default")
async def initialize_default_services(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
    store: SessionStore = Depends(get_session_store),
):
    """Seed the standard service menu for the active tenant"""
    return await TenantService(backend, session, store).initialize_default_services()


@router.put("/{service_id}")
async def update_service(
    service_id: str, data: ServiceUpdate, service: CatalogService = Depends(get_catalog_service)
):
    return await service.update_service(service_id, data)


@router.delete("/{service_id}")
async def delete_service(service_id: str, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_service(service_id)
    return {"success": True}

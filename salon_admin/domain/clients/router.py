"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_backend, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData
from .schemas import ClientCreate, ClientUpdate
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(backend, session)


@router.get("")
async def get_clients(
    search: Optional[str] = Query(None),
    sort: Literal["name", "lastVisit", "totalAppointments", "createdAt"] = Query("name"),
    service: ClientService = Depends(get_client_service),
):
    """Clients matching the search, sorted, with headline stats"""
    return await service.list_clients(search, sort)


@router.get("/{client_id}")
async def get_client(client_id: str, service: ClientService = Depends(get_client_service)):
    return await service.get_client(client_id)


@router.post("")
async def create_client(data: ClientCreate, service: ClientService = Depends(get_client_service)):
    return await service.create_client(data)


@router.put("/{client_id}")
async def update_client(
    client_id: str, data: ClientUpdate, service: ClientService = Depends(get_client_service)
):
    return await service.update_client(client_id, data)


@router.delete("/{client_id}")
async def delete_client(client_id: str, service: ClientService = Depends(get_client_service)):
    await service.delete_client(client_id)
    return {"success": True, "message": "Client deleted successfully"}

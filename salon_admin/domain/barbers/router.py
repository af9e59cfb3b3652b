"""Barber router - FastAPI endpoints for the barbers view"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_backend, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData
from .schemas import BarberCreate, BarberUpdate
from .service import BarberService

router = APIRouter(prefix="/barbers", tags=["Barbers"])


def get_barber_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
) -> BarberService:
    """Dependency injection for BarberService"""
    return BarberService(backend, session)


@router.get("")
async def list_barbers(
    search: Optional[str] = Query(None, description="Matches name, email or specialty"),
    service: BarberService = Depends(get_barber_service),
):
    return await service.list_barbers(search)


@router.post("")
async def create_barber(data: BarberCreate, service: BarberService = Depends(get_barber_service)):
    return await service.create_barber(data)


@router.put("/{barber_id}")
async def update_barber(
    barber_id: str, data: BarberUpdate, service: BarberService = Depends(get_barber_service)
):
    return await service.update_barber(barber_id, data)


@router.delete("/{barber_id}")
async def delete_barber(barber_id: str, service: BarberService = Depends(get_barber_service)):
    await service.delete_barber(barber_id)
    return {"success": True}


@router.post("/{barber_id}/connect-calendar")
async def connect_calendar(barber_id: str, service: BarberService = Depends(get_barber_service)):
    return await service.connect_calendar(barber_id)

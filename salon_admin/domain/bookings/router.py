"""Booking router - FastAPI endpoints for the bookings view"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_backend, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData
from .schemas import BookingCreate
from .service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(backend, session)


@router.get("")
async def list_bookings(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    barber_id: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Appointments in the tenant timezone, filtered by search, status and barber"""
    return await service.list_bookings(search, status, barber_id)


@router.get("/options")
async def booking_options(service: BookingService = Depends(get_booking_service)):
    return await service.get_options()


@router.post("")
async def create_booking(data: BookingCreate, service: BookingService = Depends(get_booking_service)):
    appointment = await service.create_booking(data)
    return {"success": True, "appointment": appointment}

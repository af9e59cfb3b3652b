"""Calendar router - FastAPI endpoints for the calendar view"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_backend, require_tenant
from ...backend_client import BackendClient
from ...sessions import SessionData
from .schemas import AppointmentCreate
from .service import CalendarService

router = APIRouter(prefix="/calendar", tags=["Calendar"])


def get_calendar_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(backend, session)


@router.get("")
async def get_calendar(
    view: str = Query("week"),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    barber_id: Optional[str] = Query(None),
    service: CalendarService = Depends(get_calendar_service),
):
    return await service.get_view(view, date, barber_id)


@router.post("/appointments")
async def create_appointment(
    data: AppointmentCreate, service: CalendarService = Depends(get_calendar_service)
):
    appointment = await service.create_appointment(data)
    return {"success": True, "appointment": appointment}


@router.post("/appointments/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: str, service: CalendarService = Depends(get_calendar_service)
):
    await service.cancel_appointment(appointment_id)
    return {"success": True}

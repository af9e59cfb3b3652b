"""Barber service - staff listing with calendar sync state and schedule summaries"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Optional

from fastapi import HTTPException

from ...backend_client import BackendClient
from ...sessions import SessionData
from ...shared.listing import as_list, contains
from ...shared.validators import parse_number
from ...utils.timezone import convert_to_tenant_timezone, parse_utc_datetime, to_tenant_datetime
from ..tenants.service import tenant_timezone
from .schemas import BarberCreate, BarberUpdate

logger = logging.getLogger(__name__)

SYNC_STALE_AFTER = timedelta(hours=24)


def connection_status(barber: dict, now: Optional[datetime] = None) -> str:
    integration = barber.get("calendarIntegration") or {}
    if not integration.get("connected"):
        return "Disconnected"

    last_sync = parse_utc_datetime(integration.get("lastSync"))
    now = now or datetime.now(dt_timezone.utc)
    if last_sync is None or now - last_sync > SYNC_STALE_AFTER:
        return "Sync Issue"
    return "Connected"


def schedule_summary(schedule: Optional[dict]) -> str:
    """Initials of the working days, e.g. "M, T, W, T, F, S" """
    work_days = [day[0].upper() for day, hours in (schedule or {}).items() if hours and day]
    return ", ".join(work_days) if work_days else "No schedule set"


def next_appointment_display(value: Any, timezone: str, now: Optional[datetime] = None) -> str:
    if not value:
        return "No upcoming appointments"

    converted = convert_to_tenant_timezone(value, timezone)
    appointment = converted["raw_date"]
    if appointment is None:
        return converted["time"]

    local_now = to_tenant_datetime(now or datetime.now(dt_timezone.utc), timezone)
    if appointment.date() == local_now.date():
        return f"Today {converted['time']}"
    return f"{appointment.strftime('%b')} {appointment.day}, {converted['time']}"


def matches_search(barber: dict, search: str) -> bool:
    return (
        contains(barber.get("name"), search)
        or contains(barber.get("email"), search)
        or any(contains(s, search) for s in barber.get("specialties") or [])
    )


def present_barber(barber: dict, timezone: str) -> dict:
    return {
        **barber,
        "connection_status": connection_status(barber),
        "schedule_summary": schedule_summary(barber.get("schedule")),
        "next_appointment_display": next_appointment_display(barber.get("nextAppointment"), timezone),
    }


def barber_stats(barbers: list[dict]) -> dict[str, Any]:
    stats = [b.get("stats") or {} for b in barbers]
    ratings = [parse_number(s.get("avgRating")) for s in stats]
    return {
        "total": len(barbers),
        "connected_calendars": sum(
            1 for b in barbers if (b.get("calendarIntegration") or {}).get("connected")
        ),
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else 0.0,
        "this_month": int(sum(parse_number(s.get("thisMonth")) for s in stats)),
    }


class BarberService:
    def __init__(self, backend: BackendClient, session: SessionData):
        self.backend = backend
        self.session = session

    @property
    def timezone(self) -> str:
        return tenant_timezone(self.session)

    async def list_barbers(self, search: Optional[str] = None) -> dict[str, Any]:
        data = await self.backend.get("/barbers", error_message="Failed to load barbers")
        barbers = as_list(data, "barbers")
        filtered = [b for b in barbers if matches_search(b, search)] if search else barbers
        return {
            "barbers": [present_barber(b, self.timezone) for b in filtered],
            "stats": barber_stats(barbers),
        }

    async def create_barber(self, data: BarberCreate) -> dict:
        logger.info(f"📥 Adding barber: {data.email}")
        barber = await self.backend.post(
            "/barbers", json=data.model_dump(), error_message="Failed to add barber"
        )
        return present_barber(barber, self.timezone)

    async def update_barber(self, barber_id: str, data: BarberUpdate) -> dict:
        barber = await self.backend.put(
            f"/barbers/{barber_id}",
            json=data.model_dump(exclude_unset=True),
            error_message="Failed to update barber",
        )
        return present_barber(barber, self.timezone)

    async def delete_barber(self, barber_id: str) -> None:
        await self.backend.delete(f"/barbers/{barber_id}", error_message="Failed to delete barber")
        logger.info(f"🗑️ Barber deleted: {barber_id}")

    async def connect_calendar(self, barber_id: str) -> dict[str, str]:
        """Start the per-barber calendar OAuth flow"""
        result = await self.backend.post(
            f"/barbers/{barber_id}/connect-calendar",
            error_message="Failed to connect calendar",
        )
        auth_url = (result or {}).get("authUrl")
        if not auth_url:
            logger.error(f"❌ No authorization URL returned for barber {barber_id}")
            raise HTTPException(status_code=502, detail="Failed to connect calendar")
        return {"authUrl": auth_url}

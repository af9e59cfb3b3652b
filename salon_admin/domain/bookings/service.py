"""Booking service - appointment listing with tenant-local times and manual booking"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException

from ...backend_client import BackendClient
from ...sessions import SessionData
from ...shared.listing import as_list, contains, nested
from ...shared.validators import parse_leading_int
from ...utils.timezone import convert_to_tenant_timezone
from ..tenants.service import tenant_timezone
from .schemas import BookingCreate

logger = logging.getLogger(__name__)

AI_AGENT_HASH_PREFIX = "retell_"

CHANNEL_LABELS = {
    "front_desk": "Front Desk",
    "call": "Call",
    "sms": "SMS",
    "web": "Web",
    "ai_agent": "AI Agent/Call",
}

BOOKING_STATUSES = ["confirmed", "pending", "completed", "cancelled", "no_show"]


def detect_channel(appointment: dict) -> str:
    """Bookings made by the voice agent carry a retell_ hash"""
    booking_hash = appointment.get("booking_hash") or ""
    if booking_hash.startswith(AI_AGENT_HASH_PREFIX):
        return "ai_agent"
    return appointment.get("channel") or "web"


def channel_label(channel: Optional[str]) -> str:
    if not channel:
        return "Unknown"
    return CHANNEL_LABELS.get(channel.lower(), channel)


def enrich_appointment(appointment: dict, timezone: str) -> dict:
    start = convert_to_tenant_timezone(appointment.get("start_time"), timezone)
    end = convert_to_tenant_timezone(appointment.get("end_time"), timezone)
    channel = detect_channel(appointment)
    return {
        **appointment,
        "time": start["time"],
        "date": start["date"],
        "full_date_time": start["full_date_time"],
        "end_time_display": end["time"],
        "timezone": timezone,
        "channel": channel,
        "channel_label": channel_label(channel),
    }


def matches_search(appointment: dict, search: str) -> bool:
    phone = nested(appointment, "client", "phone")
    return (
        contains(nested(appointment, "client", "name"), search)
        or bool(phone and search in phone)
        or contains(nested(appointment, "service", "name"), search)
        or contains(nested(appointment, "barber", "name"), search)
    )


def filter_appointments(
    appointments: list[dict],
    search: Optional[str] = None,
    status: Optional[str] = None,
    barber_id: Optional[str] = None,
) -> list[dict]:
    filtered = appointments
    if search:
        filtered = [a for a in filtered if matches_search(a, search)]
    if status and status != "all":
        filtered = [a for a in filtered if a.get("status") == status]
    if barber_id and barber_id != "all":
        filtered = [a for a in filtered if str(nested(a, "barber", "id")) == str(barber_id)]
    return filtered


def booking_window(date: str, time: str, duration: Any) -> tuple[str, str]:
    """Start and end as naive ISO strings; end is start plus the service duration"""
    start = f"{date}T{time}:00"
    try:
        start_dt = datetime.fromisoformat(start)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid booking date or time")
    minutes = parse_leading_int(duration) or 0
    end_dt = start_dt + timedelta(minutes=minutes)
    return start, end_dt.strftime("%Y-%m-%dT%H:%M:%S")


class BookingService:
    def __init__(self, backend: BackendClient, session: SessionData):
        self.backend = backend
        self.session = session

    async def list_bookings(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        barber_id: Optional[str] = None,
    ) -> list[dict]:
        data = await self.backend.get("/appointments", error_message="Failed to load appointments")
        timezone = tenant_timezone(self.session)
        appointments = [enrich_appointment(a, timezone) for a in as_list(data, "appointments")]
        return filter_appointments(appointments, search, status, barber_id)

    async def get_options(self) -> dict[str, Any]:
        services = await self.backend.get("/services", error_message="Failed to load services")
        barbers = await self.backend.get("/barbers", error_message="Failed to load barbers")
        return {
            "services": as_list(services, "services"),
            "barbers": as_list(barbers, "barbers"),
            "statuses": BOOKING_STATUSES,
            "channels": [{"value": k, "label": v} for k, v in CHANNEL_LABELS.items()],
        }

    async def create_booking(self, data: BookingCreate) -> dict:
        options = await self.get_options()
        service = next((s for s in options["services"] if str(s.get("id")) == str(data.service_id)), None)
        barber = next((b for b in options["barbers"] if str(b.get("id")) == str(data.barber_id)), None)
        if not service or not barber:
            raise HTTPException(status_code=400, detail="Please select both service and barber")

        start_time, end_time = booking_window(data.date, data.time, service.get("duration"))
        payload = {
            "service_id": service.get("id"),
            "barber_id": barber.get("id"),
            "start_time": start_time,
            "end_time": end_time,
            "customer": {
                "name": data.customer_name,
                "phone": data.customer_phone,
                "email": data.customer_email or "",
                "notes": data.notes or "",
            },
            "status": "confirmed",
        }
        logger.info(f"📥 Creating booking for service {service.get('id')} with barber {barber.get('id')}")
        appointment = await self.backend.post(
            "/appointments", json=payload, error_message="Failed to create booking"
        )
        logger.info("✅ Booking created")
        return appointment

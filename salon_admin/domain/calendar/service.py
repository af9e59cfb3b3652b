"""
Calendar service - day/week/month views over tenant appointments

Appointments arrive in two shapes: `start_time`/`end_time` timestamps, or
`date`/`time`/`duration` in tenant wall time. Both are normalized into one
event shape and grouped by tenant-local day.
"""

import logging
from calendar import monthrange
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from fastapi import HTTPException

from ...backend_client import BackendAPIError, BackendClient
from ...sessions import SessionData
from ...shared.listing import as_list, nested
from ...shared.validators import parse_leading_int
from ...utils.timezone import (
    convert_to_tenant_timezone,
    get_zone,
    parse_utc_datetime,
    tenant_day_bounds_utc,
)
from ..bookings.service import detect_channel
from ..tenants.service import tenant_timezone
from .schemas import AppointmentCreate

logger = logging.getLogger(__name__)

VIEWS = ("day", "week", "month")
DEFAULT_DURATION_MINUTES = 30

ALL_BARBERS = {"id": "all", "name": "All Barbers", "color": "#3B82F6"}
BARBER_COLORS = [
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#06B6D4",
    "#84CC16",
    "#F97316",
]

SLOT_START_HOUR = 8
SLOT_END_HOUR = 20


def time_slots() -> list[dict[str, Any]]:
    """30-minute slots from 8:00 AM through 8:30 PM"""
    slots = []
    for hour in range(SLOT_START_HOUR, SLOT_END_HOUR + 1):
        for minute in (0, 30):
            display_hour = hour % 12 or 12
            period = "PM" if hour >= 12 else "AM"
            slots.append(
                {"time": f"{display_hour}:{minute:02d} {period}", "hour": hour, "minute": minute}
            )
    return slots


def week_days(day: date) -> list[date]:
    """Sunday through Saturday of the week containing `day`"""
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return [start + timedelta(days=i) for i in range(7)]


def view_range(view: str, day: date) -> tuple[date, date]:
    if view == "week":
        days = week_days(day)
        return days[0], days[-1]
    if view == "month":
        return day.replace(day=1), day.replace(day=monthrange(day.year, day.month)[1])
    return day, day


def shift_month(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, monthrange(year, month)[1]))


def navigation(view: str, day: date) -> dict[str, str]:
    if view == "month":
        previous, following = shift_month(day, -1), shift_month(day, 1)
    else:
        step = timedelta(days=7 if view == "week" else 1)
        previous, following = day - step, day + step
    return {"previous": previous.isoformat(), "next": following.isoformat()}


def color_barbers(barbers: list[dict]) -> list[dict]:
    colored = [
        {"id": b.get("id"), "name": b.get("name"), "color": BARBER_COLORS[i % len(BARBER_COLORS)]}
        for i, b in enumerate(barbers)
    ]
    return [dict(ALL_BARBERS), *colored]


def _wall_time_start(day_value: Any, time_value: Any, zone: ZoneInfo) -> Optional[datetime]:
    # "9:30", "09:30" and "09:30:00" all mean 9:30 tenant time
    try:
        day = date.fromisoformat(str(day_value)[:10])
    except ValueError:
        return None
    parts = str(time_value).split(":")
    hour = parse_leading_int(parts[0])
    minute = parse_leading_int(parts[1]) if len(parts) > 1 else None
    if hour is None or minute is None:
        return None
    try:
        local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    except ValueError:
        return None
    return local.astimezone(dt_timezone.utc)


def _appointment_window(appointment: dict, zone: ZoneInfo) -> Optional[tuple[datetime, datetime]]:
    duration = parse_leading_int(appointment.get("duration")) or DEFAULT_DURATION_MINUTES

    if appointment.get("start_time"):
        start = parse_utc_datetime(appointment["start_time"])
        if start is None:
            return None
        end = parse_utc_datetime(appointment.get("end_time")) or start + timedelta(minutes=duration)
        return start, end

    if appointment.get("date") and appointment.get("time"):
        start = _wall_time_start(appointment["date"], appointment["time"], zone)
        if start is None:
            return None
        return start, start + timedelta(minutes=duration)

    return None


def normalize_appointment(appointment: dict, timezone: str) -> Optional[dict]:
    """One calendar event per appointment; None for malformed entries"""
    zone = get_zone(timezone)
    timezone = zone.key
    window = _appointment_window(appointment, zone)
    if window is None:
        return None
    start, end = window

    service = nested(appointment, "service", "name") or appointment.get("service") or "Service"
    if isinstance(service, dict):
        service = "Service"
    client = (
        nested(appointment, "client", "name")
        or nested(appointment, "customer", "name")
        or appointment.get("customer_name")
        or "Client"
    )
    display = convert_to_tenant_timezone(start, timezone)

    return {
        "id": appointment.get("id"),
        "title": f"{service} - {client}",
        "start": start.isoformat(),
        "end": end.isoformat(),
        "local_date": start.astimezone(zone).date().isoformat(),
        "barber": nested(appointment, "barber", "name")
        or appointment.get("staff_name")
        or appointment.get("barber_name")
        or "Unknown",
        "barber_id": appointment.get("barber_id")
        or appointment.get("staff_id")
        or appointment.get("barberId")
        or appointment.get("staffId"),
        "client": client,
        "service": service,
        "status": appointment.get("status") or "confirmed",
        "phone": nested(appointment, "client", "phone")
        or nested(appointment, "customer", "phone")
        or appointment.get("customer_phone"),
        "email": nested(appointment, "client", "email")
        or nested(appointment, "customer", "email")
        or appointment.get("customer_email"),
        "notes": appointment.get("notes"),
        "display_time": display["time"],
        "display_date": display["date"],
        "display_date_time": display["full_date_time"],
        "timezone": timezone,
        "channel": detect_channel(appointment),
    }


def parse_view_date(value: Optional[str], timezone: str) -> date:
    if not value:
        return datetime.now(get_zone(timezone)).date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Date must be in YYYY-MM-DD format")


class CalendarService:
    def __init__(self, backend: BackendClient, session: SessionData):
        self.backend = backend
        self.session = session

    async def _optional_list(self, path: str, key: str) -> list:
        # Booking-modal lookups; the grid still renders without them
        try:
            data = await self.backend.get(path, error_message=f"Failed to load {key}")
        except BackendAPIError as e:
            logger.warning(f"⚠️ Calendar could not load {key}: {e.message}")
            return []
        return as_list(data, key)

    async def get_view(
        self, view: str = "week", day: Optional[str] = None, barber_id: Optional[str] = None
    ) -> dict[str, Any]:
        if view not in VIEWS:
            raise HTTPException(status_code=400, detail="View must be day, week or month")

        timezone = tenant_timezone(self.session)
        reference = parse_view_date(day, timezone)
        first_day, last_day = view_range(view, reference)
        start_utc, _ = tenant_day_bounds_utc(first_day, timezone)
        _, end_utc = tenant_day_bounds_utc(last_day, timezone)

        data = await self.backend.get(
            "/appointments",
            params={"start_date": start_utc.isoformat(), "end_date": end_utc.isoformat()},
            error_message="Failed to load appointments",
        )
        events = []
        for appointment in as_list(data, "appointments"):
            event = normalize_appointment(appointment, timezone)
            if event is None:
                logger.warning(f"⚠️ Skipping malformed appointment {appointment.get('id')}")
                continue
            events.append(event)

        if barber_id and barber_id != "all":
            events = [e for e in events if str(e["barber_id"]) == str(barber_id)]

        barbers = await self._optional_list("/barbers", "barbers")
        services = await self._optional_list("/services", "services")
        clients = await self._optional_list("/clients", "clients")

        days = []
        current = first_day
        while current <= last_day:
            key = current.isoformat()
            days.append({"date": key, "appointments": [e for e in events if e["local_date"] == key]})
            current += timedelta(days=1)

        return {
            "view": view,
            "date": reference.isoformat(),
            "start_date": start_utc.isoformat(),
            "end_date": end_utc.isoformat(),
            "timezone": timezone,
            "barbers": color_barbers(barbers),
            "services": services,
            "clients": clients,
            "appointments": events,
            "days": days,
            "time_slots": time_slots(),
            "navigation": navigation(view, reference),
        }

    async def create_appointment(self, data: AppointmentCreate) -> dict:
        payload = {**data.model_dump(), "status": "confirmed"}
        logger.info(f"📥 Creating appointment on {data.date} at {data.time}")
        appointment = await self.backend.post(
            "/appointments", json=payload, error_message="Failed to create appointment"
        )
        logger.info("✅ Appointment created")
        return appointment

    async def cancel_appointment(self, appointment_id: str) -> dict:
        result = await self.backend.patch(
            f"/appointments/{appointment_id}",
            json={"status": "cancelled"},
            error_message="Failed to cancel appointment",
        )
        logger.info(f"✅ Appointment {appointment_id} cancelled")
        return result

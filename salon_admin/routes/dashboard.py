"""Dashboard home - today's bookings, no-shows and schedule for the active tenant"""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import get_backend, require_tenant
from ..backend_client import BackendClient
from ..domain.bookings.service import enrich_appointment
from ..domain.tenants.service import tenant_timezone
from ..sessions import SessionData
from ..shared.listing import as_list, nested
from ..utils.timezone import parse_utc_datetime, tenant_day_bounds_utc, tenant_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

INACTIVE_STATUSES = ("cancelled", "no_show")


def _matches(appointment: dict, barber_id: Optional[str], service_id: Optional[str]) -> bool:
    barber = appointment.get("barber_id") or nested(appointment, "barber", "id")
    service = appointment.get("service_id") or nested(appointment, "service", "id")
    if barber_id and barber_id != "all" and str(barber) != str(barber_id):
        return False
    if service_id and service_id != "all" and str(service) != str(service_id):
        return False
    return True


def build_overview(
    appointments: list[dict], timezone: str, now: Optional[datetime] = None
) -> dict:
    now = now or datetime.now(dt_timezone.utc)
    schedule = sorted(
        (enrich_appointment(a, timezone) for a in appointments),
        key=lambda a: parse_utc_datetime(a.get("start_time")) or now,
    )
    upcoming = [
        a
        for a in schedule
        if a.get("status") not in INACTIVE_STATUSES
        and (parse_utc_datetime(a.get("start_time")) or now) > now
    ]
    return {
        "timezone": timezone,
        "todays_bookings": len(schedule),
        "no_shows": sum(1 for a in schedule if a.get("status") == "no_show"),
        "next_appointment": upcoming[0] if upcoming else None,
        "schedule": schedule,
    }


@router.get("/overview")
async def dashboard_overview(
    barber_id: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None),
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
):
    timezone = tenant_timezone(session)
    start, end = tenant_day_bounds_utc(tenant_today(timezone), timezone)
    data = await backend.get(
        "/appointments",
        params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        error_message="Failed to load today's appointments",
    )
    appointments = [a for a in as_list(data, "appointments") if _matches(a, barber_id, service_id)]
    return build_overview(appointments, timezone)

"""Client service - Business logic for the clients view"""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Optional

from ...backend_client import BackendClient
from ...sessions import SessionData
from ...shared.listing import as_list, contains
from ...shared.validators import parse_number
from ...utils.timezone import convert_to_tenant_timezone, parse_utc_datetime, to_tenant_datetime
from ..tenants.service import tenant_timezone
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)

STATUS_LABELS = {"vip": "VIP", "active": "Active", "inactive": "Inactive"}

_EPOCH = datetime.min.replace(tzinfo=dt_timezone.utc)


def full_name(client: dict) -> str:
    return f"{client.get('firstName') or ''} {client.get('lastName') or ''}".strip()


def last_visit_display(client: dict, timezone: str) -> str:
    if not client.get("lastVisit"):
        return "Never"
    return convert_to_tenant_timezone(client["lastVisit"], timezone)["date"]


def matches_search(client: dict, search: str) -> bool:
    return (
        contains(full_name(client), search)
        or contains(client.get("email"), search)
        or search in (client.get("phone") or "")
    )


def _timestamp(value: Any) -> datetime:
    return parse_utc_datetime(value) or _EPOCH


def sort_clients(clients: list[dict], sort: str) -> list[dict]:
    """Name ascending; everything else newest or largest first"""
    if sort == "name":
        return sorted(clients, key=lambda c: full_name(c).lower())
    if sort == "lastVisit":
        return sorted(clients, key=lambda c: _timestamp(c.get("lastVisit")), reverse=True)
    if sort == "totalAppointments":
        return sorted(clients, key=lambda c: parse_number(c.get("totalAppointments")), reverse=True)
    if sort == "createdAt":
        return sorted(clients, key=lambda c: _timestamp(c.get("createdAt")), reverse=True)
    return clients


def client_stats(clients: list[dict], timezone: str, now: Optional[datetime] = None) -> dict[str, Any]:
    local_now = to_tenant_datetime(now or datetime.now(dt_timezone.utc), timezone)
    active_this_month = 0
    for client in clients:
        visit = to_tenant_datetime(client.get("lastVisit"), timezone) if client.get("lastVisit") else None
        if visit and (visit.year, visit.month) == (local_now.year, local_now.month):
            active_this_month += 1

    total_appointments = sum(parse_number(c.get("totalAppointments")) for c in clients)
    return {
        "total": len(clients),
        "vip": sum(1 for c in clients if c.get("status") == "vip"),
        "active_this_month": active_this_month,
        "average_appointments": round(total_appointments / len(clients)) if clients else 0,
    }


def present_client(client: dict, timezone: str) -> dict:
    return {
        **client,
        "full_name": full_name(client),
        "status_label": STATUS_LABELS.get(client.get("status") or ""),
        "last_visit_display": last_visit_display(client, timezone),
    }


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, backend: BackendClient, session: SessionData):
        self.backend = backend
        self.session = session

    @property
    def timezone(self) -> str:
        return tenant_timezone(self.session)

    async def list_clients(self, search: Optional[str] = None, sort: str = "name") -> dict[str, Any]:
        data = await self.backend.get("/clients", error_message="Failed to load clients")
        clients = as_list(data, "clients")

        filtered = [c for c in clients if matches_search(c, search)] if search else clients
        ordered = sort_clients(filtered, sort)
        return {
            "clients": [present_client(c, self.timezone) for c in ordered],
            "stats": client_stats(clients, self.timezone),
        }

    async def get_client(self, client_id: str) -> dict:
        client = await self.backend.get(f"/clients/{client_id}", error_message="Client not found")
        return present_client(client, self.timezone)

    async def create_client(self, data: ClientCreate) -> dict:
        logger.info("📥 Creating client")
        client = await self.backend.post(
            "/clients", json=data.model_dump(), error_message="Failed to create client"
        )
        logger.info(f"✅ Client created: {client.get('id')}")
        return present_client(client, self.timezone)

    async def update_client(self, client_id: str, data: ClientUpdate) -> dict:
        client = await self.backend.put(
            f"/clients/{client_id}",
            json=data.model_dump(exclude_unset=True),
            error_message="Failed to update client",
        )
        logger.info(f"✅ Client updated: {client_id}")
        return present_client(client, self.timezone)

    async def delete_client(self, client_id: str) -> None:
        await self.backend.delete(f"/clients/{client_id}", error_message="Failed to delete client")
        logger.info(f"🗑️ Client deleted: {client_id}")

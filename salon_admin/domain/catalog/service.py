"""Catalog service - the tenant's bookable services grouped by category"""

import logging
import math
from typing import Any, Optional

from ...backend_client import BackendClient
from ...shared.listing import as_list, contains
from ...shared.validators import parse_leading_int, parse_number
from .schemas import SERVICE_CATEGORIES, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


def _round(value: float) -> int:
    # Halves round up, as on the dashboard cards
    return math.floor(value + 0.5)


def duration_display(duration: Any, buffer: Any = 0) -> str:
    """Total of duration and buffer: "35m", "2h", "1h 5m" """
    total = (parse_leading_int(duration) or 0) + (parse_leading_int(buffer) or 0)
    if total >= 60:
        hours, minutes = divmod(total, 60)
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{total}m"


def matches_search(service: dict, search: str) -> bool:
    return (
        contains(service.get("name"), search)
        or contains(service.get("description"), search)
        or contains(service.get("category"), search)
    )


def sort_services(services: list[dict]) -> list[dict]:
    return sorted(services, key=lambda s: (s.get("category") or "", s.get("name") or ""))


def group_by_category(services: list[dict]) -> list[dict[str, Any]]:
    groups: dict[str, list[dict]] = {}
    for service in services:
        groups.setdefault(service.get("category") or "Other", []).append(service)
    return [{"category": category, "services": items} for category, items in groups.items()]


def service_stats(services: list[dict]) -> dict[str, Any]:
    count = len(services)
    total_duration = sum(parse_leading_int(s.get("duration")) or 0 for s in services)
    total_price = sum(parse_number(s.get("price")) for s in services)
    return {
        "total": count,
        "active": sum(1 for s in services if s.get("isActive", True)),
        "categories": len({s.get("category") for s in services}),
        "average_duration": _round(total_duration / count) if count else 0,
        "average_price": _round(total_price / count) if count else 0,
    }


class CatalogService:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def list_services(
        self, search: Optional[str] = None, category: Optional[str] = None
    ) -> dict[str, Any]:
        data = await self.backend.get("/services", error_message="Failed to load services")
        services = as_list(data, "services")

        filtered = services
        if search:
            filtered = [s for s in filtered if matches_search(s, search)]
        if category and category != "all":
            filtered = [s for s in filtered if s.get("category") == category]

        ordered = [
            {**s, "duration_display": duration_display(s.get("duration"), s.get("buffer"))}
            for s in sort_services(filtered)
        ]
        return {
            "services": ordered,
            "groups": group_by_category(ordered),
            "categories": ["all", *SERVICE_CATEGORIES],
            "stats": service_stats(services),
        }

    async def create_service(self, data: ServiceCreate) -> dict:
        service = await self.backend.post(
            "/services", json=data.model_dump(), error_message="Failed to create service"
        )
        logger.info(f"✅ Service created: {data.name}")
        return service

    async def update_service(self, service_id: str, data: ServiceUpdate) -> dict:
        return await self.backend.put(
            f"/services/{service_id}",
            json=data.model_dump(exclude_unset=True),
            error_message="Failed to update service",
        )

    async def delete_service(self, service_id: str) -> None:
        await self.backend.delete(f"/services/{service_id}", error_message="Failed to delete service")
        logger.info(f"🗑️ Service deleted: {service_id}")

"""Onboarding router - wizard steps, drafts, CSV import and provisioning"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, File, UploadFile

from ...auth import get_backend, get_session_store, require_session
from ...backend_client import BackendClient
from ...sessions import SessionData, SessionStore
from ...utils.timezone import TIMEZONE_CHOICES
from . import csv_import
from .schemas import (
    AFTER_HOURS_OPTIONS,
    CALENDAR_PROVIDERS,
    CONTACT_METHODS,
    NO_SHOW_POLICIES,
    PHONE_ACTIONS,
    SERVICE_CATEGORIES,
    STAFF_ROLES,
    ApplyHoursRequest,
    ServiceItem,
    SlugRequest,
    StaffMember,
    ToggleServiceRequest,
)
from .service import (
    OnboardingService,
    apply_hours_to_all,
    toggle_service_assignment,
    website_for_slug,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])

CSVKind = Literal["services", "staff"]


def get_onboarding_service(
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
) -> OnboardingService:
    """Dependency injection for OnboardingService"""
    return OnboardingService(backend, session, store)


@router.get("")
async def get_wizard(service: OnboardingService = Depends(get_onboarding_service)):
    return service.overview()


@router.delete("")
async def reset_wizard(service: OnboardingService = Depends(get_onboarding_service)):
    service.reset()
    return {"success": True}


@router.get("/options")
async def get_options(_: SessionData = Depends(require_session)):
    """Select options for every wizard step"""
    return {
        "timezones": TIMEZONE_CHOICES,
        "contact_methods": CONTACT_METHODS,
        "service_categories": SERVICE_CATEGORIES,
        "staff_roles": STAFF_ROLES,
        "no_show_policies": NO_SHOW_POLICIES,
        "phone_actions": PHONE_ACTIONS,
        "after_hours_options": AFTER_HOURS_OPTIONS,
        "calendar_providers": CALENDAR_PROVIDERS,
    }


@router.get("/steps/{step}")
async def get_step(step: int, service: OnboardingService = Depends(get_onboarding_service)):
    return service.get_step(step)


@router.put("/steps/{step}")
async def submit_step(
    step: int,
    payload: dict[str, Any] = Body(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Validate a step, merge it into the aggregate and advance"""
    return service.submit_step(step, payload)


@router.post("/back")
async def go_back(service: OnboardingService = Depends(get_onboarding_service)):
    return service.back()


@router.post("/edit")
async def edit(service: OnboardingService = Depends(get_onboarding_service)):
    return service.edit()


# ============================================================================
# DRAFTS & PROVISIONING
# ============================================================================


@router.post("/draft")
async def save_draft(service: OnboardingService = Depends(get_onboarding_service)):
    return await service.save_draft()


@router.get("/draft")
async def load_draft(service: OnboardingService = Depends(get_onboarding_service)):
    return await service.load_draft()


@router.post("/provision")
async def provision(service: OnboardingService = Depends(get_onboarding_service)):
    return await service.provision()


# ============================================================================
# STEP HELPERS
# ============================================================================


@router.post("/services")
async def add_service(
    data: ServiceItem, service: OnboardingService = Depends(get_onboarding_service)
):
    return {"services": service.add_service(data)}


@router.delete("/services/{index}")
async def remove_service(index: int, service: OnboardingService = Depends(get_onboarding_service)):
    return {"services": service.remove_service(index)}


@router.post("/staff")
async def add_staff(data: StaffMember, service: OnboardingService = Depends(get_onboarding_service)):
    return {"staff": service.add_staff(data)}


@router.delete("/staff/{index}")
async def remove_staff(index: int, service: OnboardingService = Depends(get_onboarding_service)):
    return {"staff": service.remove_staff(index)}


@router.post("/staff/toggle-service")
async def toggle_service(data: ToggleServiceRequest, _: SessionData = Depends(require_session)):
    return {"servicesAssigned": toggle_service_assignment(data.servicesAssigned, data.service)}


@router.post("/hours/apply-all")
async def apply_hours(
    data: ApplyHoursRequest, _: SessionData = Depends(require_session)
):
    """Copy one day's hours onto every day of the week"""
    return {"hours": apply_hours_to_all(data.hours, data.isOpen, data.open, data.close)}


@router.get("/website/suggest-slug")
async def suggest_slug(service: OnboardingService = Depends(get_onboarding_service)):
    return service.suggest_website()


@router.post("/website/slug")
async def set_slug(data: SlugRequest, _: SessionData = Depends(require_session)):
    """Clean a typed slug and derive the booking path and public URL"""
    return website_for_slug(data.slug)


# ============================================================================
# CSV IMPORT
# ============================================================================


async def _read_upload(file: UploadFile) -> str:
    csv_import.check_upload(file.filename, file.content_type)
    content = await file.read()
    return content.decode("utf-8-sig", errors="replace")


@router.post("/csv/{kind}/preview")
async def preview_csv(
    kind: CSVKind,
    file: UploadFile = File(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    return service.preview_csv(kind, await _read_upload(file))


@router.post("/csv/{kind}/import")
async def import_csv(
    kind: CSVKind,
    file: UploadFile = File(...),
    service: OnboardingService = Depends(get_onboarding_service),
):
    imported = service.import_csv(kind, await _read_upload(file))
    return {kind: imported}

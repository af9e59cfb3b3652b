"""Onboarding service - wizard state, step validation, drafts and provisioning"""

import logging
from typing import Any, Optional
from urllib.parse import quote

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ...backend_client import BackendAPIError, BackendClient
from ...config import FRONTEND_URL, PUBLIC_BOOKING_BASE_URL
from ...sessions import SessionData, SessionStore
from ...shared.validators import (
    clean_slug,
    generate_booking_path,
    get_validation_error,
    normalize_phone,
    slugify_business_name,
    validate_time_format,
)
from ...utils.errors import FormValidationError
from . import csv_import
from .schemas import (
    DEFAULT_PLAN,
    STEP_MODELS,
    STEP_TITLES,
    TOTAL_STEPS,
    ServiceItem,
    StaffMember,
    StepModel,
    WizardState,
)

logger = logging.getLogger(__name__)

DRAFT_SAVE_FAILED = "Failed to save your progress. Please try again."
OAUTH_PROVIDERS = ("google", "microsoft")


# ============================================================================
# STEP VALIDATION
# ============================================================================


def _required_email(errors: dict, key: str, value: str, required_message: str) -> None:
    if not value.strip():
        errors[key] = required_message
    else:
        error = get_validation_error("email", value)
        if error:
            errors[key] = error


def _required_phone(errors: dict, key: str, value: str, required_message: str) -> None:
    if not value.strip():
        errors[key] = required_message
    else:
        error = get_validation_error("phone", value)
        if error:
            errors[key] = error


def _time_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def validate_business_basics(step) -> dict[str, str]:
    errors = {}
    if not step.legalName.strip():
        errors["legalName"] = "Legal name is required"
    _required_phone(errors, "phone", step.phone, "Phone number is required")
    _required_email(errors, "email", step.email, "Email is required")
    if not step.address.city.strip():
        errors["city"] = "City is required"
    if not step.address.state.strip():
        errors["state"] = "State is required"
    if not step.address.country.strip():
        errors["country"] = "Country is required"
    timezone_error = get_validation_error("timezone", step.timezone)
    if timezone_error:
        errors["timezone"] = timezone_error
    return errors


def validate_contacts(step) -> dict[str, str]:
    errors = {}
    owner, redirect, billing = step.owner, step.redirect, step.billing

    if not owner.name.strip():
        errors["owner_name"] = "Owner name is required"
    if not owner.title.strip():
        errors["owner_title"] = "Owner title is required"
    _required_email(errors, "owner_email", owner.email, "Owner email is required")
    _required_phone(errors, "owner_mobile", owner.mobile, "Owner mobile is required")

    if not redirect.name.strip():
        errors["redirect_name"] = "Manager name is required"
    if not redirect.title.strip():
        errors["redirect_title"] = "Manager title is required"
    _required_email(errors, "redirect_email", redirect.email, "Manager email is required")
    _required_phone(errors, "redirect_phone", redirect.phone, "Manager phone is required")

    if not billing.name.strip():
        errors["billing_name"] = "Billing contact name is required"
    _required_email(errors, "billing_email", billing.email, "Billing email is required")
    _required_phone(errors, "billing_phone", billing.phone, "Billing phone is required")
    if not billing.address.strip():
        errors["billing_address"] = "Billing address is required"
    return errors


def validate_hours(step) -> dict[str, str]:
    errors = {}
    for index, hour in enumerate(step.hours):
        if not hour.isOpen:
            continue
        for field, label in (("open", "Open"), ("close", "Close")):
            value = getattr(hour, field)
            key = f"day_{index}_{field}"
            if not value:
                errors[key] = f"{label} time is required"
            else:
                error = get_validation_error("time", value)
                if error:
                    errors[key] = error
        if (
            validate_time_format(hour.open)
            and validate_time_format(hour.close)
            and _time_minutes(hour.open) >= _time_minutes(hour.close)
        ):
            errors[f"day_{index}_close"] = "Close time must be after open time"
    return errors


def validate_rules(step) -> dict[str, str]:
    errors = {}
    rules = step.rules
    if rules.minLeadHours < 0 or rules.minLeadHours > 168:
        errors["minLeadHours"] = "Minimum lead time must be between 0 and 168 hours (7 days)"
    if rules.maxLeadDays < 1 or rules.maxLeadDays > 365:
        errors["maxLeadDays"] = "Maximum advance booking must be between 1 and 365 days"
    if rules.sameDay:
        if not rules.sameDayCutoff:
            errors["sameDayCutoff"] = (
                "Same day cutoff time is required when same day booking is enabled"
            )
        else:
            error = get_validation_error("time", rules.sameDayCutoff)
            if error:
                errors["sameDayCutoff"] = error
    if rules.cancelWindowHours < 0 or rules.cancelWindowHours > 168:
        errors["cancelWindowHours"] = "Cancellation window must be between 0 and 168 hours (7 days)"
    policy = rules.noShowPolicy
    if policy.type in ("fee", "block") and (not policy.value or policy.value < 0):
        errors["noShowPolicy_value"] = "Policy value is required and must be non-negative"
    return errors


def validate_services(step) -> dict[str, str]:
    if not step.services:
        return {"services": "At least one service is required"}
    return {}


def validate_staff(step) -> dict[str, str]:
    if not step.staff:
        return {"staff": "At least one staff member is required"}
    return {}


def validate_phone_routing(step) -> dict[str, str]:
    errors = {}
    phone = step.phone
    _required_phone(errors, "currentNumber", phone.currentNumber, "Current phone number is required")
    if phone.afterHours == "forward":
        _required_phone(
            errors,
            "onCallNumber",
            phone.onCallNumber,
            "On-call number is required when forwarding calls",
        )
    return errors


def validate_calendar(step) -> dict[str, str]:
    calendar = step.calendar
    if calendar.provider in OAUTH_PROVIDERS and not calendar.staffToConnect:
        return {
            "staffToConnect": "At least one staff member must be selected for calendar integration"
        }
    return {}


def validate_consent(step) -> dict[str, str]:
    return {}


def validate_website(step) -> dict[str, str]:
    errors = {}
    if not step.website.slug.strip():
        errors["slug"] = "Website slug is required"
    else:
        error = get_validation_error("slug", step.website.slug)
        if error:
            errors["slug"] = error
    if not step.goLiveDate.strip():
        errors["goLiveDate"] = "Go-live date is required"
    else:
        error = get_validation_error("goLiveDate", step.goLiveDate)
        if error:
            errors["goLiveDate"] = error
    return errors


STEP_VALIDATORS = {
    1: validate_business_basics,
    2: validate_contacts,
    3: validate_hours,
    4: validate_rules,
    5: validate_services,
    6: validate_staff,
    7: validate_phone_routing,
    8: validate_calendar,
    9: validate_consent,
    10: validate_website,
}


def normalize_step_phones(step_number: int, step: StepModel) -> None:
    """Apply blur-time E.164 formatting to every phone field of the step"""
    if step_number == 1:
        step.phone = normalize_phone(step.phone)
    elif step_number == 2:
        step.owner.mobile = normalize_phone(step.owner.mobile)
        step.redirect.phone = normalize_phone(step.redirect.phone)
        step.billing.phone = normalize_phone(step.billing.phone)
    elif step_number == 7:
        step.phone.currentNumber = normalize_phone(step.phone.currentNumber)
        step.phone.onCallNumber = normalize_phone(step.phone.onCallNumber)


def apply_calendar_provider(step: StepModel) -> None:
    if step.calendar.provider == "none":
        step.calendar.staffToConnect = []


def website_for_slug(slug: str) -> dict[str, str]:
    cleaned = clean_slug(slug)
    return {
        "slug": cleaned,
        "bookingPath": generate_booking_path(cleaned),
        "publicUrl": f"{PUBLIC_BOOKING_BASE_URL}/{cleaned}" if cleaned else "",
    }


# ============================================================================
# AGGREGATE
# ============================================================================


def merge_step(form_data: dict[str, Any], step_number: int, step: StepModel) -> dict[str, Any]:
    """Shallow-merge a completed step into the aggregate; only the step's keys change"""
    values = step.model_dump()
    if step_number == 1:
        return {**form_data, "tenant": {**(form_data.get("tenant") or {}), **values}}
    return {**form_data, **values}


def step_prefill(form_data: dict[str, Any], step_number: int) -> dict[str, Any]:
    """Current values for a step form, falling back to the step defaults"""
    model = STEP_MODELS[step_number]
    source = (form_data.get("tenant") or {}) if step_number == 1 else form_data
    try:
        return model.model_validate(source).model_dump()
    except ValidationError:
        logger.warning(f"⚠️ Stored data for step {step_number} is unreadable, using defaults")
        return model().model_dump()


def run_readiness_check(form_data: dict[str, Any]) -> list[str]:
    issues = []
    tenant = form_data.get("tenant") or {}
    if not tenant.get("legalName"):
        issues.append("Business legal name is required")
    if not tenant.get("phone"):
        issues.append("Business phone is required")
    if not tenant.get("email"):
        issues.append("Business email is required")
    if not ((form_data.get("contacts") or {}).get("owner") or {}).get("name"):
        issues.append("Owner contact is required")
    if not form_data.get("services"):
        issues.append("At least one service is required")
    if not form_data.get("staff"):
        issues.append("At least one staff member is required")
    if not (form_data.get("website") or {}).get("slug"):
        issues.append("Website slug is required")
    if not form_data.get("goLiveDate"):
        issues.append("Go-live date is required")
    return issues


def with_plan(form_data: dict[str, Any], status: str) -> dict[str, Any]:
    return {**form_data, "plan": form_data.get("plan") or dict(DEFAULT_PLAN), "status": status}


# ============================================================================
# STEP HELPERS
# ============================================================================


def add_service(services: list[dict], new_service: ServiceItem) -> list[dict]:
    errors = {}
    if not new_service.name.strip():
        errors["name"] = "Service name is required"
    duration_error = get_validation_error("duration", new_service.duration)
    if duration_error:
        errors["duration"] = duration_error
    price_error = get_validation_error("price", new_service.price)
    if price_error:
        errors["price"] = price_error
    if not new_service.category.strip():
        errors["category"] = "Category is required"
    if errors:
        raise FormValidationError(errors)

    name = new_service.name.lower()
    if any((s.get("name") or "").lower() == name for s in services):
        raise FormValidationError({"name": "Service with this name already exists"})
    return [*services, new_service.model_dump()]


def add_staff_member(
    staff: list[dict], new_staff: StaffMember, owner_email: Optional[str] = None
) -> list[dict]:
    errors = {}
    if not new_staff.name.strip():
        errors["name"] = "Staff name is required"
    _required_email(errors, "email", new_staff.email, "Email is required")

    member = new_staff.model_dump()
    if owner_email and new_staff.email.lower() == owner_email.lower():
        member["role"] = "Owner-Admin"
    if not member["role"].strip():
        errors["role"] = "Role is required"

    email = new_staff.email.lower()
    if any((s.get("email") or "").lower() == email for s in staff):
        errors["email"] = "Staff with this email already exists"
    if errors:
        raise FormValidationError(errors)
    return [*staff, member]


def toggle_service_assignment(assigned: list[str], service_name: str) -> list[str]:
    if service_name in assigned:
        return [s for s in assigned if s != service_name]
    return [*assigned, service_name]


def apply_hours_to_all(
    hours: list[dict], is_open: bool, open_time: Optional[str], close_time: Optional[str]
) -> list[dict]:
    return [
        {
            **hour,
            "isOpen": is_open,
            "open": open_time if is_open else None,
            "close": close_time if is_open else None,
        }
        for hour in hours
    ]


def suggest_website(form_data: dict[str, Any]) -> Optional[dict[str, str]]:
    tenant = form_data.get("tenant") or {}
    business_name = tenant.get("legalName") or tenant.get("brandName") or ""
    if not business_name:
        return None
    return website_for_slug(slugify_business_name(business_name))


def calendar_oauth_link(provider: str, staff_email: str, tenant_id: Optional[str] = None) -> str:
    return (
        f"{FRONTEND_URL}/api/oauth/calendar/{provider}/start"
        f"?tenantId={tenant_id or 'DRAFT_ID'}&staffEmail={quote(staff_email, safe='')}"
    )


# ============================================================================
# SERVICE
# ============================================================================


class OnboardingService:
    """Wizard driver over the session-held aggregate"""

    def __init__(self, backend: BackendClient, session: SessionData, store: SessionStore):
        self.backend = backend
        self.session = session
        self.store = store
        self.state = WizardState.model_validate(session.onboarding or {})

    def _save(self) -> None:
        self.session.onboarding = self.state.model_dump()
        self.store.save(self.session)

    @property
    def form_data(self) -> dict[str, Any]:
        return self.state.form_data

    def _owner_email(self) -> Optional[str]:
        return ((self.form_data.get("contacts") or {}).get("owner") or {}).get("email")

    def overview(self) -> dict[str, Any]:
        steps = []
        for step_id, title in STEP_TITLES.items():
            if self.state.show_final_review or step_id < self.state.current_step:
                status = "done"
            elif step_id == self.state.current_step:
                status = "active"
            else:
                status = "pending"
            steps.append({"id": step_id, "title": title, "status": status})

        return {
            **self.state.model_dump(),
            "total_steps": TOTAL_STEPS,
            "steps": steps,
            "readiness_issues": run_readiness_check(self.form_data),
        }

    def get_step(self, step_number: int) -> dict[str, Any]:
        self._check_step(step_number)
        values = step_prefill(self.form_data, step_number)
        result = {"step": step_number, "title": STEP_TITLES[step_number], "data": values}
        if step_number == 8:
            calendar = values["calendar"]
            result["oauth_links"] = (
                {
                    email: calendar_oauth_link(calendar["provider"], email, self.session.tenant_id)
                    for email in calendar["staffToConnect"]
                }
                if calendar["provider"] in OAUTH_PROVIDERS
                else {}
            )
            result["available_staff"] = self.form_data.get("staff") or []
        elif step_number == 6:
            result["available_services"] = self.form_data.get("services") or []
        return result

    def submit_step(self, step_number: int, payload: dict[str, Any]) -> dict[str, Any]:
        self._check_step(step_number)
        try:
            step = STEP_MODELS[step_number].model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(e.errors()) from e

        normalize_step_phones(step_number, step)
        if step_number == 8:
            apply_calendar_provider(step)
        if step_number == 10:
            step.website = step.website.model_copy(update=website_for_slug(step.website.slug))

        errors = STEP_VALIDATORS[step_number](step)
        if errors:
            logger.info(f"⚠️ Onboarding step {step_number} rejected: {sorted(errors)}")
            raise FormValidationError(errors)

        self.state.form_data = merge_step(self.form_data, step_number, step)
        if step_number < TOTAL_STEPS:
            self.state.current_step = step_number + 1
        else:
            self.state.current_step = TOTAL_STEPS
            self.state.show_final_review = True
        self._save()
        logger.info(f"✅ Onboarding step {step_number} completed")
        return self.overview()

    def back(self) -> dict[str, Any]:
        if self.state.show_final_review:
            self.state.show_final_review = False
        else:
            self.state.current_step = max(1, self.state.current_step - 1)
        self._save()
        return self.overview()

    def edit(self) -> dict[str, Any]:
        self.state.show_final_review = False
        self._save()
        return self.overview()

    def reset(self) -> None:
        self.state = WizardState()
        self._save()

    # Aggregate list helpers

    def add_service(self, new_service: ServiceItem) -> list[dict]:
        services = add_service(self.form_data.get("services") or [], new_service)
        self.state.form_data = {**self.form_data, "services": services}
        self._save()
        return services

    def remove_service(self, index: int) -> list[dict]:
        services = list(self.form_data.get("services") or [])
        if index < 0 or index >= len(services):
            raise HTTPException(status_code=404, detail="Service not found")
        services.pop(index)
        self.state.form_data = {**self.form_data, "services": services}
        self._save()
        return services

    def add_staff(self, new_staff: StaffMember) -> list[dict]:
        staff = add_staff_member(self.form_data.get("staff") or [], new_staff, self._owner_email())
        self.state.form_data = {**self.form_data, "staff": staff}
        self._save()
        return staff

    def remove_staff(self, index: int) -> list[dict]:
        staff = list(self.form_data.get("staff") or [])
        if index < 0 or index >= len(staff):
            raise HTTPException(status_code=404, detail="Staff member not found")
        staff.pop(index)
        self.state.form_data = {**self.form_data, "staff": staff}
        self._save()
        return staff

    def suggest_website(self) -> dict[str, str]:
        website = suggest_website(self.form_data)
        if website is None:
            raise HTTPException(status_code=400, detail="Enter a business name first")
        return website

    # CSV

    def preview_csv(self, kind: str, text: str) -> dict[str, Any]:
        parsed = csv_import.parse_csv(text, kind)
        return {k: parsed[k] for k in ("headers", "data", "total_rows")}

    def import_csv(self, kind: str, text: str) -> list[dict]:
        parsed = csv_import.parse_csv(text, kind)
        if kind == "services":
            merged = csv_import.merge_services(
                self.form_data.get("services") or [], csv_import.rows_to_services(parsed["rows"])
            )
        else:
            merged = csv_import.merge_staff(
                self.form_data.get("staff") or [],
                csv_import.rows_to_staff(parsed["rows"], self._owner_email()),
            )
        self.state.form_data = {**self.form_data, kind: merged}
        self._save()
        return merged

    # Backend

    async def save_draft(self) -> dict[str, Any]:
        try:
            await self.backend.post(
                "/onboarding/draft",
                json=with_plan(self.form_data, "draft"),
                error_message=DRAFT_SAVE_FAILED,
            )
        except BackendAPIError as e:
            logger.error(f"❌ Failed to save onboarding draft: {e.message}")
            raise HTTPException(status_code=502, detail=DRAFT_SAVE_FAILED) from e
        logger.info("✅ Onboarding draft saved")
        return {"success": True, "message": "Draft Saved"}

    async def load_draft(self) -> dict[str, Any]:
        try:
            draft = await self.backend.get("/onboarding/draft")
        except BackendAPIError as e:
            if e.status_code == 404:
                return {"found": False}
            raise

        self.state.form_data = (draft or {}).get("data") or {}
        self._save()
        logger.info("✅ Onboarding draft restored")
        return {"found": True, "message": "Your previous progress has been restored.", **self.overview()}

    async def provision(self) -> dict[str, Any]:
        issues = run_readiness_check(self.form_data)
        if issues:
            raise HTTPException(
                status_code=409,
                detail={"message": "Please resolve issues before provisioning", "issues": issues},
            )

        result = await self.backend.post(
            "/onboarding/provision",
            json=with_plan(self.form_data, "provisioned"),
            error_message="Provisioning failed",
        )
        self.reset()

        legal_name = ((result or {}).get("tenant") or {}).get("legalName") or "New Tenant"
        logger.info(f"✅ Tenant provisioned: {legal_name}")
        return {
            "success": True,
            "result": result,
            "message": f'Barbershop "{legal_name}" has been created and owner invited via email.',
        }

    @staticmethod
    def _check_step(step_number: int) -> None:
        if step_number not in STEP_MODELS:
            raise HTTPException(status_code=404, detail="Unknown onboarding step")

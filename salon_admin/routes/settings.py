"""
Business Settings Routes
Business info is read from and written to the active tenant; hours, booking
and notification sections are served with their defaults.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from ..auth import get_backend, get_session_store, require_tenant
from ..backend_client import BackendClient
from ..config import DEFAULT_TENANT_TIMEZONE
from ..domain.tenants.schemas import (
    BUSINESS_TYPES,
    TenantUpdate,
    check_business_type,
    check_timezone,
)
from ..domain.tenants.service import TenantService
from ..sessions import SessionData, SessionStore
from ..utils.timezone import TIMEZONE_CHOICES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])

BUSINESS_TYPE_LABELS = {
    "salon": "Hair Salon",
    "barbershop": "Barbershop",
    "spa": "Spa",
    "beauty": "Beauty Salon",
}

DEFAULT_BUSINESS_HOURS = {
    "monday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "tuesday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "wednesday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "thursday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "friday": {"enabled": True, "start": "09:00", "end": "17:00"},
    "saturday": {"enabled": True, "start": "10:00", "end": "16:00"},
    "sunday": {"enabled": False, "start": "10:00", "end": "16:00"},
}

DEFAULT_BOOKING_SETTINGS = {
    "bufferTimeMinutes": 5,
    "maxAdvanceBookingDays": 30,
    "cancellationWindowHours": 24,
    "autoConfirmBookings": True,
    "allowOnlineBooking": True,
    "requirePhone": True,
    "requireEmail": False,
}

DEFAULT_NOTIFICATION_SETTINGS = {
    "smsConfirmations": True,
    "emailConfirmations": True,
    "smsReminders": True,
    "emailReminders": True,
    "reminderTimeBefore": 60,
    "smsNoShow": False,
    "emailNoShow": True,
}


class BusinessSettings(BaseModel):
    businessName: str
    businessType: str = "salon"
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    timezone: str = DEFAULT_TENANT_TIMEZONE

    @field_validator("businessName")
    @classmethod
    def validate_business_name(cls, v):
        if not v.strip():
            raise ValueError("Business name is required")
        return v.strip()

    @field_validator("businessType")
    @classmethod
    def validate_business_type(cls, v):
        return check_business_type(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return check_timezone(v)


def business_info(tenant: Optional[dict]) -> dict:
    tenant = tenant or {}
    return {
        "businessName": tenant.get("business_name") or "",
        "businessType": tenant.get("business_type") or "salon",
        "address": tenant.get("address") or "",
        "phone": tenant.get("phone") or "",
        "website": tenant.get("website") or "",
        "timezone": tenant.get("timezone") or DEFAULT_TENANT_TIMEZONE,
        "logoUrl": tenant.get("logo_url") or "",
    }


@router.get("")
async def get_settings(session: SessionData = Depends(require_tenant)):
    return {
        "business": business_info(session.current_tenant),
        "hours": DEFAULT_BUSINESS_HOURS,
        "booking": DEFAULT_BOOKING_SETTINGS,
        "notifications": DEFAULT_NOTIFICATION_SETTINGS,
        "timezones": TIMEZONE_CHOICES,
        "business_types": [
            {"value": value, "label": BUSINESS_TYPE_LABELS[value]} for value in BUSINESS_TYPES
        ],
    }


@router.put("/business")
async def update_business_settings(
    data: BusinessSettings,
    backend: BackendClient = Depends(get_backend),
    session: SessionData = Depends(require_tenant),
    store: SessionStore = Depends(get_session_store),
):
    """Validate the business form and save it onto the active tenant"""
    update = TenantUpdate(
        business_name=data.businessName,
        business_type=data.businessType,
        address=data.address,
        phone=data.phone,
        website=data.website,
        timezone=data.timezone,
    )
    tenant = await TenantService(backend, session, store).update_tenant(session.tenant_id, update)
    logger.info(f"✅ Business information updated for tenant {session.tenant_id}")
    return {
        "success": True,
        "message": "Business information updated successfully!",
        "business": business_info(tenant),
    }

"""Tenant domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import get_iana_timezone, normalize_phone

BUSINESS_TYPES = ("salon", "barbershop", "spa", "beauty")


def check_business_type(v):
    if v is not None and v not in BUSINESS_TYPES:
        raise ValueError(f"Business type must be one of: {', '.join(BUSINESS_TYPES)}")
    return v


def check_timezone(v):
    if v is None:
        return v
    resolved = get_iana_timezone(v)
    if not resolved:
        raise ValueError("Please enter a valid timezone (e.g., Asia/Karachi)")
    return resolved


class TenantCreate(BaseModel):
    """Schema for creating a tenant (business)"""

    business_name: str
    business_type: str = "salon"
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    timezone: str = "America/New_York"

    @field_validator("business_name")
    @classmethod
    def validate_business_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Business name is required")
        return v.strip()

    @field_validator("business_type")
    @classmethod
    def validate_business_type(cls, v):
        return check_business_type(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return check_timezone(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v) if v else v


class TenantUpdate(BaseModel):
    """Schema for updating a tenant; unset fields are left untouched"""

    business_name: Optional[str] = None
    business_type: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("business_type")
    @classmethod
    def validate_business_type(cls, v):
        return check_business_type(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return check_timezone(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v) if v else v


class TenantSwitch(BaseModel):
    tenant_id: str

"""Master-admin console schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email
from ..tenants.schemas import check_business_type, check_timezone


class BarbershopCreate(BaseModel):
    """New barbershop with its owner account"""

    businessName: str
    businessType: str = "salon"
    ownerFirstName: str
    ownerLastName: str
    ownerEmail: str
    ownerPhone: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    timezone: str = "America/New_York"

    @field_validator("businessName", "ownerFirstName", "ownerLastName")
    @classmethod
    def required(cls, v):
        if not v.strip():
            raise ValueError("This field is required")
        return v.strip()

    @field_validator("ownerEmail")
    @classmethod
    def check_email(cls, v):
        if not validate_email(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("businessType")
    @classmethod
    def validate_business_type(cls, v):
        return check_business_type(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        return check_timezone(v)


class DeleteTenantRequest(BaseModel):
    confirm: str = ""


class TemplateUpdate(BaseModel):
    name: str
    content: str
    is_active: bool = True


class TemplateOverride(BaseModel):
    tenant_id: Optional[str] = None

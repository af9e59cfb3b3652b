"""Client domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import normalize_phone, validate_email as is_valid_email

CLIENT_STATUSES = ("vip", "active", "inactive")


def _check_email(v):
    if v and not is_valid_email(v):
        raise ValueError("Please enter a valid email address")
    return v


def _check_status(v):
    if v and v not in CLIENT_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(CLIENT_STATUSES)}")
    return v


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    firstName: str
    lastName: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = "active"
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)

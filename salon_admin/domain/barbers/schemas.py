"""Barber domain schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import normalize_phone, validate_email


class WorkingHours(BaseModel):
    start: str
    end: str


class BarberCreate(BaseModel):
    """Schema for adding a barber to the shop"""

    name: str
    email: str
    phone: Optional[str] = None
    specialties: list[str] = []
    bio: Optional[str] = None
    isActive: bool = True
    schedule: dict[str, Optional[WorkingHours]] = {}

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not validate_email(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v


class BarberUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: Optional[list[str]] = None
    bio: Optional[str] = None
    isActive: Optional[bool] = None
    schedule: Optional[dict[str, Optional[WorkingHours]]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if v and not validate_email(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v

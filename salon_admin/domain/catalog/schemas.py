"""Service catalog schemas"""

from typing import Optional

from pydantic import BaseModel, Field

SERVICE_CATEGORIES = [
    "Haircuts & Trims",
    "Grooming",
    "Styling & Finishing",
    "Color Services",
    "Treatments",
    "Consultations",
]


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0, description="Minutes")
    buffer: int = Field(0, ge=0, description="Minutes after the service")
    price: float = Field(..., ge=0)
    description: Optional[str] = None
    isActive: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, gt=0)
    buffer: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    isActive: Optional[bool] = None

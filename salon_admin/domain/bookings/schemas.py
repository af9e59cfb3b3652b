"""Booking schemas"""

from typing import Optional, Union

from pydantic import BaseModel, Field

Identifier = Union[int, str]


class BookingCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_email: Optional[str] = None
    service_id: Identifier
    barber_id: Identifier
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    notes: Optional[str] = None

"""Calendar schemas"""

from datetime import date as Date
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import VALIDATION_MESSAGES, validate_time_format


class AppointmentCreate(BaseModel):
    """Slot booking from the calendar grid"""

    customer_name: str = Field(..., min_length=1)
    customer_phone: str = ""
    customer_email: str = ""
    staff_id: Optional[Union[int, str]] = None
    service: str = ""
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    duration: int = Field(30, gt=0)
    notes: str = ""
    send_sms: bool = True

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        try:
            Date.fromisoformat(v)
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        if not validate_time_format(v):
            raise ValueError(VALIDATION_MESSAGES["TIME_FORMAT"])
        return v

# barberbook/schemas/booking.py
"""
Booking request and response schemas.

Times of day travel as ``HH:MM`` strings and are parsed by the booking
service so that malformed values surface as MALFORMED_TIME rather than as
generic request validation failures. The customer is never taken from the
body; it comes from the bearer token.
"""

from datetime import date, datetime
from decimal import Decimal
import re
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..models.booking import BookingStatus, PaymentStatus
from ._strict_base import StrictModel, StrictRequestModel

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


class BookingCreate(StrictRequestModel):
    """Book one or more services with a provider at a grid start time."""

    provider_id: str = Field(..., description="Provider to book")
    booking_date: date = Field(..., description="Date of the appointment")
    start_time: str = Field(..., max_length=5, description="Start time, HH:MM 24-hour")
    service_ids: List[str] = Field(..., description="Service offerings to include")
    payment_reference: Optional[str] = Field(
        None,
        max_length=255,
        description="Gateway payment id when the customer has already paid",
    )

    @field_validator("booking_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return _ensure_date_only(v, "booking_date")

    @field_validator("start_time", mode="before")
    @classmethod
    def _strip_start_time(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class BookingCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingDeclineRequest(BookingCancelRequest):
    """Provider declining a pending request; the reason is optional."""


class BookingPaymentRequest(StrictRequestModel):
    """Pay-after flow: attach a verified gateway payment to a pending booking."""

    payment_reference: str = Field(..., min_length=1, max_length=255)


class BookingServiceItem(StrictModel):
    service_id: str
    name: str
    duration_minutes: int
    price: Decimal


class BookingResponse(StrictModel):
    """Booking as returned by every booking endpoint."""

    model_config = ConfigDict(extra="forbid", validate_assignment=False)

    id: str
    customer_id: str
    provider_id: str
    booking_date: date
    start_time: str
    end_time: Optional[str] = None
    duration_minutes: int
    total_amount: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    services: List[BookingServiceItem]
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_role: Optional[str] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls.model_validate(booking.to_dict())

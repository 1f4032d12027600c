# barberbook/routes/v1/bookings.py
"""
Booking routes (v1).

Endpoints:
    POST /                      Create a booking (customer)
    GET  /{booking_id}          Booking details (owner or admin)
    POST /{booking_id}/confirm  Confirm a pending booking (provider, admin)
    POST /{booking_id}/payment  Pay for a pending booking (customer)
    POST /{booking_id}/cancel   Cancel (customer, provider, admin)
    POST /{booking_id}/decline  Decline a pending request (provider)
    POST /{booking_id}/complete Mark completed (provider, admin)
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, status

from ...api.dependencies.auth import get_current_customer, get_current_principal
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...core.ulid_helper import ULID_PATH_PATTERN
from ...errors import handle_domain_exception
from ...principal import CustomerPrincipal, Principal
from ...schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingDeclineRequest,
    BookingPaymentRequest,
    BookingResponse,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

BOOKING_ID = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN)


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Malformed request, unknown services or unverified payment"},
        404: {"description": "Provider not found"},
        409: {"description": "Time slot already booked"},
    },
)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    current_customer: CustomerPrincipal = Depends(get_current_customer),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Book one or more services; the customer is taken from the token."""
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking, current_customer.id, booking_data
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = BOOKING_ID,
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id, principal)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str = BOOKING_ID,
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Confirm a booking. Repeating the call returns the confirmed booking."""
    try:
        booking = await asyncio.to_thread(booking_service.confirm_booking, booking_id, principal)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def pay_for_booking(
    booking_id: str = BOOKING_ID,
    payment: BookingPaymentRequest = Body(...),
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Attach a verified gateway payment and confirm the booking."""
    try:
        payment_context = await asyncio.to_thread(
            booking_service.verify_payment_reference, payment.payment_reference
        )
        booking = await asyncio.to_thread(
            booking_service.confirm_booking_payment, booking_id, principal, payment_context
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = BOOKING_ID,
    cancel_data: Optional[BookingCancelRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a booking."""
    reason = cancel_data.reason if cancel_data else None
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, booking_id, principal, reason
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/decline", response_model=BookingResponse)
async def decline_booking(
    booking_id: str = BOOKING_ID,
    decline_data: Optional[BookingDeclineRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    reason = decline_data.reason if decline_data else None
    try:
        booking = await asyncio.to_thread(
            booking_service.decline_booking, booking_id, principal, reason
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str = BOOKING_ID,
    principal: Principal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.complete_booking, booking_id, principal)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)

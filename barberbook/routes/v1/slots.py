# barberbook/routes/v1/slots.py
"""
Slot query endpoint (v1).

    GET /providers/{provider_id}/slots?date=YYYY-MM-DD&serviceIds=a,b
"""

import asyncio
from datetime import date
import logging

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies.services import get_slot_generator
from ...core.exceptions import DomainException
from ...core.ulid_helper import ULID_PATH_PATTERN
from ...errors import handle_domain_exception
from ...schemas.slots import AvailableSlotsResponse
from ...services.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["slots-v1"])


@router.get(
    "/providers/{provider_id}/slots",
    response_model=AvailableSlotsResponse,
    responses={
        400: {"description": "No valid services requested"},
        404: {"description": "Provider not found"},
    },
)
async def get_available_slots(
    provider_id: str = Path(..., pattern=ULID_PATH_PATTERN, description="Provider ULID"),
    on_date: date = Query(..., alias="date", description="Day to query, YYYY-MM-DD"),
    service_ids: str = Query(
        ..., alias="serviceIds", description="Comma-separated service offering ids"
    ),
    slot_generator: SlotGenerator = Depends(get_slot_generator),
) -> AvailableSlotsResponse:
    """Start times at which the requested services fit without overlapping a booking."""
    requested = [service_id.strip() for service_id in service_ids.split(",") if service_id.strip()]
    try:
        result = await asyncio.to_thread(
            slot_generator.available_slots, provider_id, on_date, requested
        )
        return AvailableSlotsResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)

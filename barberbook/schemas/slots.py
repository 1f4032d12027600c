"""Slot query response."""

from datetime import date
from typing import List

from pydantic import Field

from ._strict_base import StrictModel


class AvailableSlotsResponse(StrictModel):
    """Free start times for a provider on a date, for a given service bundle."""

    date: date
    total_duration: int = Field(..., description="Sum of the requested services in minutes")
    slots: List[str] = Field(default_factory=list, description="Ascending HH:MM start times")

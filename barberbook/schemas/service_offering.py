# barberbook/schemas/service_offering.py
"""Provider-facing service offering schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel


class ServiceOfferingCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=120)
    category: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=2000)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class ServiceOfferingUpdate(StrictRequestModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    category: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=2000)
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None


class ServiceOfferingResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    provider_id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: int
    price: Decimal
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

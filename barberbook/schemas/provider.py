# barberbook/schemas/provider.py
"""Provider registration schemas."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from ..models.provider import SubscriptionState
from ._strict_base import StrictModel, StrictRequestModel


class ProviderRegistration(StrictRequestModel):
    """
    Register a provider.

    With ``registration_payment_reference`` the one-time fee is verified and
    the provider starts ACTIVE. Without it a subscription mandate is opened
    and the provider waits in PENDING_MANDATE until the gateway authenticates it.
    """

    full_name: str = Field(..., min_length=1, max_length=120)
    email: Optional[str] = Field(None, max_length=255)
    mobile_number: str = Field(..., min_length=6, max_length=20)
    shop_name: str = Field(..., min_length=1, max_length=120)
    shop_address: str = Field(..., min_length=1, max_length=1000)
    registration_payment_reference: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must be a valid address")
        return v

    @field_validator("mobile_number")
    @classmethod
    def _normalize_mobile(cls, v: str) -> str:
        digits = v.strip().replace(" ", "")
        if not digits.lstrip("+").isdigit():
            raise ValueError("mobile_number must contain digits only")
        return digits


class ProviderRegistrationResponse(StrictModel):
    model_config = ConfigDict(extra="forbid")

    provider_id: str
    subscription_status: SubscriptionState
    external_subscription_id: Optional[str] = None
    trial_ends_at: Optional[datetime] = None
    mandate_reference: Optional[str] = Field(
        None, description="Gateway reference the provider completes to authorise the mandate"
    )

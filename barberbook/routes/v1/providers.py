# barberbook/routes/v1/providers.py
"""Provider registration (v1)."""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies.services import get_provider_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...schemas.provider import ProviderRegistration, ProviderRegistrationResponse
from ...services.provider_service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["providers-v1"])


@router.post(
    "/register",
    response_model=ProviderRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Registration payment not verified"},
        409: {"description": "Email or mobile number already registered"},
    },
)
async def register_provider(
    registration: ProviderRegistration = Body(...),
    provider_service: ProviderService = Depends(get_provider_service),
) -> ProviderRegistrationResponse:
    """
    Register a provider.

    Paying the registration fee activates the account immediately; otherwise
    a subscription mandate with a free trial is opened.
    """
    try:
        result = await asyncio.to_thread(provider_service.register_provider, registration)
    except DomainException as e:
        handle_domain_exception(e)
    provider = result.provider
    return ProviderRegistrationResponse(
        provider_id=provider.id,
        subscription_status=provider.subscription_status,
        external_subscription_id=provider.external_subscription_id,
        trial_ends_at=provider.trial_ends_at,
        mandate_reference=result.mandate_reference,
    )

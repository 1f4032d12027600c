# barberbook/routes/v1/provider_services.py
"""
Provider catalog management (v1).

Writes require a provider token and a TRIAL or ACTIVE subscription.
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path, status

from ...api.dependencies.auth import get_current_provider
from ...api.dependencies.services import get_service_catalog_service
from ...core.exceptions import DomainException
from ...core.ulid_helper import ULID_PATH_PATTERN
from ...errors import handle_domain_exception
from ...principal import ProviderPrincipal
from ...schemas.service_offering import (
    ServiceOfferingCreate,
    ServiceOfferingResponse,
    ServiceOfferingUpdate,
)
from ...services.service_catalog import ServiceCatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["provider-services-v1"])


@router.get("", response_model=List[ServiceOfferingResponse])
async def list_my_services(
    current_provider: ProviderPrincipal = Depends(get_current_provider),
    catalog: ServiceCatalogService = Depends(get_service_catalog_service),
) -> List[ServiceOfferingResponse]:
    offerings = await asyncio.to_thread(
        catalog.list_services, current_provider.id, include_inactive=True
    )
    return [ServiceOfferingResponse.model_validate(offering) for offering in offerings]


@router.post(
    "",
    response_model=ServiceOfferingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Subscription inactive"}},
)
async def create_service(
    payload: ServiceOfferingCreate = Body(...),
    current_provider: ProviderPrincipal = Depends(get_current_provider),
    catalog: ServiceCatalogService = Depends(get_service_catalog_service),
) -> ServiceOfferingResponse:
    try:
        offering = await asyncio.to_thread(
            catalog.create_service_offering, current_provider.id, payload
        )
        return ServiceOfferingResponse.model_validate(offering)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch(
    "/{service_id}",
    response_model=ServiceOfferingResponse,
    responses={403: {"description": "Not your service, or subscription inactive"}},
)
async def update_service(
    service_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    payload: ServiceOfferingUpdate = Body(...),
    current_provider: ProviderPrincipal = Depends(get_current_provider),
    catalog: ServiceCatalogService = Depends(get_service_catalog_service),
) -> ServiceOfferingResponse:
    try:
        offering = await asyncio.to_thread(
            catalog.update_service_offering, current_provider.id, service_id, payload
        )
        return ServiceOfferingResponse.model_validate(offering)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{service_id}", response_model=ServiceOfferingResponse)
async def deactivate_service(
    service_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    current_provider: ProviderPrincipal = Depends(get_current_provider),
    catalog: ServiceCatalogService = Depends(get_service_catalog_service),
) -> ServiceOfferingResponse:
    """Deactivate an offering; it is kept for existing bookings."""
    try:
        offering = await asyncio.to_thread(
            catalog.deactivate_service_offering, current_provider.id, service_id
        )
        return ServiceOfferingResponse.model_validate(offering)
    except DomainException as e:
        handle_domain_exception(e)

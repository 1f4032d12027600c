# barberbook/services/service_catalog.py
"""
Service Catalog for Barberbook

Resolves requested service ids into active offerings for slot queries and
booking, and lets a provider manage its own offerings. Resolution is
read-only; unknown and inactive ids are dropped rather than rejected so a
stale client selection still books whatever is still offered.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.exceptions import (
    InvalidProviderException,
    NoValidServicesException,
    NotAuthorizedException,
    NotFoundException,
    ValidationException,
)
from ..models.provider import Provider
from ..models.service_offering import ServiceOffering
from ..repositories.factory import RepositoryFactory
from ..schemas.service_offering import ServiceOfferingCreate, ServiceOfferingUpdate
from .base import BaseService
from .subscription_service import ensure_write_access

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedService:
    """Snapshot of an active offering at resolution time."""

    id: str
    name: str
    duration_minutes: int
    price: Decimal

    @classmethod
    def from_offering(cls, offering: ServiceOffering) -> "ResolvedService":
        return cls(
            id=offering.id,
            name=offering.name,
            duration_minutes=int(offering.duration_minutes),
            price=Decimal(offering.price),
        )


def total_duration(services: Sequence[ResolvedService]) -> int:
    return sum(service.duration_minutes for service in services)


def total_amount(services: Sequence[ResolvedService]) -> Decimal:
    return sum((service.price for service in services), Decimal("0.00"))


class ServiceCatalogService(BaseService):
    """Resolution of service bundles plus provider-side offering management."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_service_catalog_repository(db)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)

    @BaseService.measure_operation("resolve_services")
    def resolve_services(
        self, service_ids: Sequence[str], provider_id: Optional[str] = None
    ) -> List[ResolvedService]:
        """
        Resolve ``service_ids`` to active offerings in request order.

        Duplicates resolve once. With ``provider_id``, offerings owned by other
        providers are dropped as well.

        Raises:
            ValidationException: If no ids were given
            NoValidServicesException: If nothing resolves
        """
        if not service_ids:
            raise ValidationException(
                "At least one service must be selected", code="NO_SERVICES_SELECTED"
            )

        requested: List[str] = list(dict.fromkeys(service_ids))
        offerings = {
            offering.id: offering
            for offering in self.repository.get_active_by_ids(requested, provider_id)
        }

        dropped = [service_id for service_id in requested if service_id not in offerings]
        if dropped:
            self.logger.debug(
                "Dropped unknown or inactive services: %s",
                dropped,
                extra={"provider_id": provider_id},
            )

        resolved = [
            ResolvedService.from_offering(offerings[service_id])
            for service_id in requested
            if service_id in offerings
        ]
        if not resolved:
            raise NoValidServicesException(requested)
        return resolved

    @BaseService.measure_operation("list_provider_services")
    def list_services(self, provider_id: str, include_inactive: bool = False) -> List[ServiceOffering]:
        return self.repository.list_for_provider(provider_id, include_inactive=include_inactive)

    @BaseService.measure_operation("create_service_offering")
    def create_service_offering(
        self, provider_id: str, payload: ServiceOfferingCreate
    ) -> ServiceOffering:
        """Add an offering to the calling provider's catalog."""
        with self.transaction():
            provider = self._get_writable_provider(provider_id)
            offering = self.repository.create(
                provider_id=provider.id,
                is_active=True,
                **payload.model_dump(),
            )
        self.log_operation(
            "create_service_offering", provider_id=provider_id, service_id=offering.id
        )
        return offering

    @BaseService.measure_operation("update_service_offering")
    def update_service_offering(
        self, provider_id: str, service_id: str, payload: ServiceOfferingUpdate
    ) -> ServiceOffering:
        """
        Edit one of the calling provider's offerings.

        Existing bookings are untouched; they carry their own snapshots.
        """
        changes = payload.model_dump(exclude_unset=True)
        with self.transaction():
            self._get_writable_provider(provider_id)
            offering = self._get_owned_offering(provider_id, service_id)
            for key, value in changes.items():
                if value is None and key in ("name", "duration_minutes", "price", "is_active"):
                    continue
                setattr(offering, key, value)
            self.repository.flush()
        self.log_operation(
            "update_service_offering",
            provider_id=provider_id,
            service_id=service_id,
            fields=sorted(changes),
        )
        return offering

    @BaseService.measure_operation("deactivate_service_offering")
    def deactivate_service_offering(self, provider_id: str, service_id: str) -> ServiceOffering:
        with self.transaction():
            self._get_writable_provider(provider_id)
            offering = self._get_owned_offering(provider_id, service_id)
            offering.is_active = False
            self.repository.flush()
        self.log_operation(
            "deactivate_service_offering", provider_id=provider_id, service_id=service_id
        )
        return offering

    def _get_writable_provider(self, provider_id: str) -> Provider:
        provider = self.provider_repository.get_by_id(provider_id, load_relationships=False)
        if provider is None:
            raise InvalidProviderException(provider_id)
        ensure_write_access(provider)
        return provider

    def _get_owned_offering(self, provider_id: str, service_id: str) -> ServiceOffering:
        offering = self.repository.get_by_id(service_id, load_relationships=False)
        if offering is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        if offering.provider_id != provider_id:
            raise NotAuthorizedException(
                "You can only edit your own services",
                details={"service_id": service_id},
            )
        return offering

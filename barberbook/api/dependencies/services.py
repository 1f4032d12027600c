# barberbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Settings-derived collaborators (the scheduling grid and the payment
gateway) are built once and injected; tests override them through
``app.dependency_overrides``.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...core.scheduling import ScheduleConfig
from ...services.booking_service import BookingService
from ...services.payment_gateway import PaymentGateway, StripePaymentGateway
from ...services.provider_service import ProviderService
from ...services.service_catalog import ServiceCatalogService
from ...services.slot_generator import SlotGenerator
from ...services.subscription_service import SubscriptionService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _schedule_singleton() -> ScheduleConfig:
    return settings.schedule_config()


@lru_cache(maxsize=1)
def _gateway_singleton() -> PaymentGateway:
    logger.info("Initialising %s payment gateway", settings.payment_gateway)
    return StripePaymentGateway(settings)


def get_schedule_config() -> ScheduleConfig:
    """Working window and slot grid shared by slot queries and booking."""
    return _schedule_singleton()


def get_payment_gateway() -> PaymentGateway:
    return _gateway_singleton()


def get_service_catalog_service(db: Session = Depends(get_db)) -> ServiceCatalogService:
    return ServiceCatalogService(db)


def get_slot_generator(
    db: Session = Depends(get_db),
    schedule: ScheduleConfig = Depends(get_schedule_config),
) -> SlotGenerator:
    return SlotGenerator(db, schedule)


def get_booking_service(
    db: Session = Depends(get_db),
    schedule: ScheduleConfig = Depends(get_schedule_config),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session
        schedule: Scheduling grid used to validate start times
        gateway: Gateway used to verify pre-paid bookings
    """
    return BookingService(db, schedule, gateway)


def get_subscription_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> SubscriptionService:
    return SubscriptionService(db, gateway)


def get_provider_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ProviderService:
    return ProviderService(
        db,
        gateway,
        registration_fee=settings.registration_fee_amount,
        trial_days=settings.subscription_trial_days,
    )

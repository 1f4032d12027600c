# barberbook/services/booking_service.py
"""
Booking Service for Barberbook

Creates bookings without double-booking a provider and drives them through
their status lifecycle.

Creation is one unit of work: the provider row is locked (or, on SQLite,
the write transaction is opened up front), services are resolved, the
conflict test is repeated against committed bookings, and the booking, its
line items and any payment are inserted together. Concurrent requests for
the same provider therefore serialise, and the loser sees the winner's row
and fails with SLOT_ALREADY_BOOKED.
"""

from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    ConflictException,
    InvalidBookingTransitionException,
    InvalidCustomerException,
    InvalidProviderException,
    NotFoundException,
    SlotAlreadyBookedException,
    ValidationException,
)
from ..core.scheduling import ScheduleConfig
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.provider import Provider
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Principal
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate
from ..utils.time_utils import to_minutes, to_time_of_day
from .base import BaseService
from .booking_lifecycle import BookingAction, ensure_actor_allowed, ensure_transition
from .conflict_checker import ConflictChecker
from .payment_gateway import PaymentContext, PaymentGateway
from .service_catalog import ServiceCatalogService, total_amount, total_duration
from .subscription_service import ensure_write_access

logger = logging.getLogger(__name__)

DECLINED_BY_PROVIDER = "Declined by provider"


class BookingService(BaseService):
    """Booking coordinator and status transitions."""

    def __init__(
        self,
        db: Session,
        schedule: ScheduleConfig,
        gateway: PaymentGateway,
        conflict_checker: Optional[ConflictChecker] = None,
        catalog: Optional[ServiceCatalogService] = None,
    ):
        super().__init__(db)
        self.schedule = schedule
        self.gateway = gateway
        self.conflict_checker = conflict_checker or ConflictChecker(db)
        self.catalog = catalog or ServiceCatalogService(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        customer_id: str,
        request: BookingCreate,
        payment_context: Optional[PaymentContext] = None,
    ) -> Booking:
        """
        Create a booking for ``customer_id``.

        When the request carries a ``payment_reference`` it is verified with
        the gateway first and the booking is created confirmed and paid.

        Raises:
            MalformedTimeException: If ``start_time`` is not HH:MM
            ValidationException: Off-grid or out-of-hours start, unverified payment
            InvalidCustomerException: If the customer is unknown or inactive
            InvalidProviderException: If the provider is unknown or unavailable
            NoValidServicesException: If no requested service resolves
            SlotAlreadyBookedException: If the interval overlaps a live booking
            StorageException: If the unit of work fails and is rolled back
        """
        self.log_operation(
            "create_booking",
            customer_id=customer_id,
            provider_id=request.provider_id,
            date=request.booking_date.isoformat(),
            start_time=request.start_time,
        )

        start_minutes = to_minutes(request.start_time)
        if not self.schedule.is_on_grid(start_minutes):
            raise ValidationException(
                f"Start time {request.start_time} is not on the booking grid",
                code="START_TIME_OFF_GRID",
                details={"start_time": request.start_time, **self.schedule.describe()},
            )

        # Gateway round trip happens before any row is read or locked
        if payment_context is None and request.payment_reference:
            payment_context = self.verify_payment_reference(request.payment_reference)

        self._validate_customer(customer_id)
        self._validate_provider(request.provider_id)

        with self.transaction():
            provider = self.provider_repository.lock_for_booking(request.provider_id)
            if provider is None or not provider.is_available:
                raise InvalidProviderException(request.provider_id)

            services = self.catalog.resolve_services(
                request.service_ids, provider_id=request.provider_id
            )
            duration = total_duration(services)
            amount = total_amount(services)
            self._ensure_within_working_hours(start_minutes, duration)

            conflicts = self.conflict_checker.find_conflicts(
                request.provider_id, request.booking_date, start_minutes, duration
            )
            if conflicts:
                prometheus_metrics.inc_booking_attempt("conflict")
                raise SlotAlreadyBookedException(
                    details={
                        "provider_id": request.provider_id,
                        "booking_date": request.booking_date.isoformat(),
                        "start_time": request.start_time,
                        "duration_minutes": duration,
                        "conflicting_booking_ids": [booking.id for booking in conflicts],
                    }
                )

            booking = self.repository.create(
                customer_id=customer_id,
                provider_id=request.provider_id,
                booking_date=request.booking_date,
                start_time=to_time_of_day(start_minutes),
                duration_minutes=duration,
                total_amount=amount,
                status=BookingStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
            )
            for position, service in enumerate(services):
                self.repository.add_line_item(
                    booking,
                    service_offering_id=service.id,
                    position=position,
                    service_name=service.name,
                    duration_minutes=service.duration_minutes,
                    price=service.price,
                )

            if payment_context is not None:
                self._record_payment(booking, customer_id, payment_context)
                booking.confirm()

        prometheus_metrics.inc_booking_attempt("created")
        self.logger.info(
            f"Booking {booking.id} created for provider {request.provider_id} "
            f"on {request.booking_date} at {booking.start_time} ({duration}min)"
        )
        return self._hydrated(booking.id)

    def verify_payment_reference(self, reference: str) -> PaymentContext:
        """
        Ask the gateway whether ``reference`` is a successful payment.

        Raises:
            ValidationException: PAYMENT_NOT_VERIFIED when it is not
        """
        verified = self.gateway.verify_payment(reference)
        if not verified.succeeded:
            raise ValidationException(
                "Payment could not be verified",
                code="PAYMENT_NOT_VERIFIED",
                details={"payment_reference": reference},
            )
        return PaymentContext.from_verified(verified)

    # Status transitions

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(self, booking_id: str, actor: Principal) -> Booking:
        """Confirm a pending booking. Confirming a confirmed booking is a no-op."""
        with self.transaction():
            booking = self._load_for_action(booking_id, actor, BookingAction.CONFIRM)
            if booking.status != BookingStatus.CONFIRMED.value:
                self._apply_transition(booking, BookingStatus.CONFIRMED, booking.confirm)
        return self._hydrated(booking_id)

    @BaseService.measure_operation("confirm_booking_payment")
    def confirm_booking_payment(
        self, booking_id: str, actor: Principal, payment_context: PaymentContext
    ) -> Booking:
        """
        Pay-after flow: record the customer's payment and confirm the booking.

        Repeating it for a booking that is already confirmed and paid succeeds
        without recording anything.
        """
        with self.transaction():
            booking = self._load_for_action(booking_id, actor, BookingAction.PAY)
            already_settled = (
                booking.status == BookingStatus.CONFIRMED.value
                and booking.payment_status == PaymentStatus.COMPLETED.value
            )
            if not already_settled:
                if booking.status != BookingStatus.CONFIRMED.value:
                    ensure_transition(booking, BookingStatus.CONFIRMED)
                self._record_payment(booking, booking.customer_id, payment_context)
                if booking.status != BookingStatus.CONFIRMED.value:
                    self._apply_transition(booking, BookingStatus.CONFIRMED, booking.confirm)
        return self._hydrated(booking_id)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, actor: Principal, reason: Optional[str] = None
    ) -> Booking:
        with self.transaction():
            booking = self._load_for_action(booking_id, actor, BookingAction.CANCEL)
            self._apply_transition(
                booking,
                BookingStatus.CANCELLED,
                lambda: booking.cancel(actor.id, actor.role, reason),
            )
        return self._hydrated(booking_id)

    @BaseService.measure_operation("decline_booking")
    def decline_booking(
        self, booking_id: str, actor: Principal, reason: Optional[str] = None
    ) -> Booking:
        """Provider turns down a pending request."""
        with self.transaction():
            booking = self._load_for_action(booking_id, actor, BookingAction.DECLINE)
            if booking.status != BookingStatus.PENDING.value:
                raise InvalidBookingTransitionException(
                    booking.id, booking.status, BookingStatus.CANCELLED.value
                )
            message = f"{DECLINED_BY_PROVIDER}: {reason}" if reason else DECLINED_BY_PROVIDER
            self._apply_transition(
                booking,
                BookingStatus.CANCELLED,
                lambda: booking.cancel(actor.id, actor.role, message),
            )
        return self._hydrated(booking_id)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, actor: Principal) -> Booking:
        with self.transaction():
            booking = self._load_for_action(booking_id, actor, BookingAction.COMPLETE)
            self._apply_transition(booking, BookingStatus.COMPLETED, booking.complete)
        return self._hydrated(booking_id)

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, actor: Principal) -> Booking:
        booking = self._hydrated(booking_id)
        ensure_actor_allowed(booking, actor, BookingAction.VIEW)
        return booking

    # Helpers

    def _validate_customer(self, customer_id: str) -> None:
        customer = self.user_repository.get_by_id(customer_id, load_relationships=False)
        if customer is None or not customer.is_active:
            raise InvalidCustomerException(customer_id)

    def _validate_provider(self, provider_id: str) -> Provider:
        provider = self.provider_repository.get_by_id(provider_id, load_relationships=False)
        if provider is None:
            raise InvalidProviderException(provider_id)
        if not provider.is_available:
            raise InvalidProviderException(provider_id, "Provider is not accepting bookings")
        return provider

    def _ensure_within_working_hours(self, start_minutes: int, duration: int) -> None:
        if not self.schedule.fits_window(start_minutes, duration):
            raise ValidationException(
                "Requested services do not fit inside working hours",
                code="OUTSIDE_WORKING_HOURS",
                details={
                    "start_time": to_time_of_day(start_minutes),
                    "duration_minutes": duration,
                    **self.schedule.describe(),
                },
            )

    def _record_payment(
        self, booking: Booking, customer_id: str, payment_context: PaymentContext
    ) -> None:
        if self.payment_repository.get_by_transaction_id(payment_context.transaction_id):
            raise ConflictException(
                "This payment has already been used for a booking",
                code="PAYMENT_ALREADY_RECORDED",
                details={"payment_reference": payment_context.transaction_id},
            )
        if Decimal(payment_context.amount) < Decimal(booking.total_amount):
            raise ValidationException(
                "Payment does not cover the booking total",
                code="PAYMENT_AMOUNT_INSUFFICIENT",
                details={
                    "paid": str(payment_context.amount),
                    "required": str(booking.total_amount),
                },
            )
        self.payment_repository.create(
            booking_id=booking.id,
            customer_id=customer_id,
            amount=payment_context.amount,
            currency=payment_context.currency,
            transaction_id=payment_context.transaction_id,
            gateway=payment_context.gateway,
            payment_method=payment_context.payment_method,
            payment_status=PaymentStatus.COMPLETED.value,
        )
        booking.mark_paid()

    def _load_for_action(self, booking_id: str, actor: Principal, action: BookingAction) -> Booking:
        booking = self.repository.get_for_update(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        ensure_actor_allowed(booking, actor, action)
        if actor.role == "provider":
            provider = self.provider_repository.get_by_id(actor.id, load_relationships=False)
            if provider is None:
                raise InvalidProviderException(actor.id)
            ensure_write_access(provider)
        return booking

    def _apply_transition(self, booking: Booking, target: BookingStatus, apply) -> None:
        previous = booking.status
        ensure_transition(booking, target)
        apply()
        self.repository.flush()
        prometheus_metrics.inc_booking_transition(previous, target.value)

    def _hydrated(self, booking_id: str) -> Booking:
        booking = self.repository.get_hydrated(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

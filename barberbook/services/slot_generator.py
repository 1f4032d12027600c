# barberbook/services/slot_generator.py
"""
Slot Generator for Barberbook

Computes the start times at which a bundle of services fits in a provider's
day without overlapping a live booking. Start times sit on the scheduling
grid (``work_start + k * step``) and the whole bundle must end by
``work_end``. Slot queries are read-only and take no locks, so a returned
slot may be gone by the time it is booked; the booking coordinator
re-checks inside its transaction.
"""

from datetime import date
import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import (
    InvalidProviderException,
    RepositoryException,
    StorageException,
    ValidationException,
)
from ..core.scheduling import ScheduleConfig
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import intervals_overlap, to_time_of_day
from .base import BaseService
from .service_catalog import ServiceCatalogService, total_duration

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]


class SlotSequence:
    """
    Ascending ``HH:MM`` start times, computed on iteration.

    Each ``iter()`` walks the grid again over the same occupied intervals,
    so iterating twice yields the same slots. Empty means fully booked.
    """

    def __init__(self, schedule: ScheduleConfig, occupied: Sequence[Interval], duration: int):
        self._schedule = schedule
        self._occupied = tuple(sorted(occupied))
        self._duration = duration

    def __iter__(self) -> Iterator[str]:
        start = self._schedule.work_start
        while start + self._duration <= self._schedule.work_end:
            end = start + self._duration
            if not any(
                intervals_overlap(start, end, busy_start, busy_end)
                for busy_start, busy_end in self._occupied
            ):
                yield to_time_of_day(start)
            start += self._schedule.slot_step_minutes

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None

    def __repr__(self) -> str:
        return f"<SlotSequence duration={self._duration} occupied={len(self._occupied)}>"


class SlotGenerator(BaseService):
    """Read-only slot computation for one provider and date."""

    def __init__(
        self,
        db: Session,
        schedule: ScheduleConfig,
        repository: Optional[ConflictCheckerRepository] = None,
        catalog: Optional[ServiceCatalogService] = None,
    ):
        super().__init__(db)
        self.schedule = schedule
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.catalog = catalog or ServiceCatalogService(db)

    @BaseService.measure_operation("generate_slots")
    def generate(self, provider_id: str, on_date: date, total_duration_minutes: int) -> SlotSequence:
        """
        Free start times for a bundle lasting ``total_duration_minutes``.

        Raises:
            ValidationException: If the duration is not positive
        """
        if isinstance(total_duration_minutes, bool) or total_duration_minutes <= 0:
            raise ValidationException(
                "Total duration must be a positive number of minutes",
                code="INVALID_DURATION",
                details={"total_duration_minutes": total_duration_minutes},
            )

        occupied: List[Interval] = [
            (booking.start_minutes, booking.end_minutes)
            for booking in self.repository.get_bookings_for_date(provider_id, on_date)
        ]
        return SlotSequence(self.schedule, occupied, total_duration_minutes)

    @BaseService.measure_operation("available_slots")
    def available_slots(
        self, provider_id: str, on_date: date, service_ids: Sequence[str]
    ) -> dict:
        """
        Slot query entry point: resolve services, sum them, list start times.

        A provider that is not accepting bookings is rejected the same way the
        booking coordinator rejects it, so every returned slot can be booked.

        Raises:
            InvalidProviderException: If the provider does not exist or is unavailable
            NoValidServicesException: If none of the services resolve
            StorageException: If the bookings cannot be read
        """
        try:
            provider = self.provider_repository.get_by_id(provider_id, load_relationships=False)
            if provider is None:
                raise InvalidProviderException(provider_id)
            if not provider.is_available:
                raise InvalidProviderException(provider_id, "Provider is not accepting bookings")

            services = self.catalog.resolve_services(service_ids, provider_id=provider_id)
            duration = total_duration(services)
            slots = list(self.generate(provider_id, on_date, duration))
        except RepositoryException as e:
            self.logger.error(f"Slot query failed for provider {provider_id}: {str(e)}")
            raise StorageException(f"Could not load bookings: {str(e)}") from e

        self.logger.debug(
            "Computed %d slots for provider %s on %s", len(slots), provider_id, on_date
        )
        return {"date": on_date, "total_duration": duration, "slots": slots}

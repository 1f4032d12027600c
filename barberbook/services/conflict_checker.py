# barberbook/services/conflict_checker.py
"""
Conflict Checker Service for Barberbook

A requested interval ``[start, start + duration)`` conflicts with a live
booking of the same provider on the same date when the half-open intervals
overlap. Touching intervals (one ends exactly when the next starts) do not
conflict. Only pending and confirmed bookings are live; cancelled and
completed bookings never conflict.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.booking import Booking
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import intervals_overlap, to_time_of_day
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictChecker(BaseService):
    """Service for checking a requested interval against live bookings."""

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        provider_id: str,
        check_date: date,
        start_minutes: int,
        duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """Live bookings overlapping the requested interval, ordered by start."""
        end_minutes = start_minutes + duration_minutes
        bookings = self.repository.get_bookings_for_conflict_check(
            provider_id, check_date, exclude_booking_id
        )
        conflicts = sorted(
            (
                booking
                for booking in bookings
                if intervals_overlap(
                    start_minutes, end_minutes, booking.start_minutes, booking.end_minutes
                )
            ),
            key=lambda booking: booking.start_minutes,
        )

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} booking conflicts for {provider_id} on {check_date} "
                f"at {to_time_of_day(start_minutes)} for {duration_minutes}min"
            )
        return conflicts

    def has_conflict(
        self,
        provider_id: str,
        check_date: date,
        start_minutes: int,
        duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return bool(
            self.find_conflicts(
                provider_id, check_date, start_minutes, duration_minutes, exclude_booking_id
            )
        )

# barberbook/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for Barberbook

Loads the live (pending or confirmed) booking set for one provider and
date. Cancelled and completed bookings release their interval, so every
query here filters them out. Slot generation and the booking coordinator
share these queries so both see the same occupied set.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

LIVE_BOOKING_STATUSES = [
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
]


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_bookings_for_conflict_check(
        self, provider_id: str, check_date: date, exclude_booking_id: Optional[str] = None
    ) -> List[Booking]:
        """
        Get live bookings that could conflict with an interval on a date.

        Args:
            provider_id: The provider to check
            check_date: The date to check for conflicts
            exclude_booking_id: Optional booking ID to exclude from results
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.provider_id == provider_id,
                Booking.booking_date == check_date,
                Booking.status.in_(LIVE_BOOKING_STATUSES),
            )

            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    def get_bookings_for_date(self, provider_id: str, target_date: date) -> List[Booking]:
        """Get all live bookings for a provider on a date, ordered by start time."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.provider_id == provider_id,
                    Booking.booking_date == target_date,
                    Booking.status.in_(LIVE_BOOKING_STATUSES),
                )
                .order_by(Booking.start_time)
                .all(),
            )

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for date: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")

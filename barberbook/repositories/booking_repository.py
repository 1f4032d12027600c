# barberbook/repositories/booking_repository.py
"""Booking data access: hydrated reads and creation with line items."""

import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingLineItem
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for bookings and their line items."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.customer),
            joinedload(Booking.provider),
            selectinload(Booking.line_items),
            joinedload(Booking.payment),
        )

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """Booking row locked for a status change (no-op lock on SQLite)."""
        return self.get_by_id(booking_id, load_relationships=False, for_update=True)

    def add_line_item(self, booking: Booking, **kwargs) -> BookingLineItem:
        try:
            item = BookingLineItem(booking_id=booking.id, **kwargs)
            self.db.add(item)
            self.db.flush()
            return item
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding line item to booking {booking.id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to add booking line item: {str(e)}")

    def get_hydrated(self, booking_id: str) -> Optional[Booking]:
        """Booking with customer, provider, line items and payment loaded."""
        try:
            query = self._apply_eager_loading(
                self.db.query(Booking).filter(Booking.id == booking_id)
            ).populate_existing()
            return cast(Optional[Booking], query.first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

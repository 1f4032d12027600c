# barberbook/models/booking.py
"""
Booking model for the Barberbook platform.

A booking is one appointment covering one or more services with a single
provider. Prices and durations are snapshotted into line items at creation,
so later catalog edits never change an existing booking. Bookings are never
physically deleted; cancellation is a status.

Invariant: for a given (provider, date), no two non-cancelled bookings
overlap on ``[start, start + duration)``.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from ..utils.time_utils import to_minutes, to_time_of_day

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Awaiting provider confirmation or payment
    CONFIRMED = "confirmed"
    COMPLETED = "completed"  # Terminal
    CANCELLED = "cancelled"  # Terminal


class PaymentStatus(str, Enum):
    """Payment state carried on a booking and on payment rows."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Booking(Base):
    """An appointment between a customer and a provider."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)

    booking_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_role = Column(String(20), nullable=True)
    cancelled_by_id = Column(String(26), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("Provider", back_populates="bookings")
    line_items = relationship(
        "BookingLineItem",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingLineItem.position",
    )
    payment = relationship("Payment", back_populates="booking", uselist=False)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_bookings_duration_positive"),
        CheckConstraint("total_amount >= 0", name="ck_bookings_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        Index("ix_bookings_provider_date_status", "provider_id", "booking_date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: customer={self.customer_id}, "
            f"provider={self.provider_id}, date={self.booking_date}, "
            f"start={self.start_time}, duration={self.duration_minutes}, status={self.status}>"
        )

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + int(self.duration_minutes)

    @property
    def end_time(self) -> Optional[str]:
        """End as ``HH:MM``; ``None`` when the booking runs to midnight."""
        end = self.end_minutes
        return to_time_of_day(end) if end < 24 * 60 else None

    def confirm(self) -> None:
        """Mark booking as confirmed."""
        self.status = BookingStatus.CONFIRMED.value
        self.confirmed_at = datetime.now(timezone.utc)
        logger.info(f"Booking {self.id} confirmed")

    def mark_paid(self) -> None:
        self.payment_status = PaymentStatus.COMPLETED.value

    def cancel(self, cancelled_by_id: str, role: str, reason: Optional[str] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_id
        self.cancelled_by_role = role
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled by {role} {cancelled_by_id}")

    def complete(self) -> None:
        """Mark booking as completed."""
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = datetime.now(timezone.utc)
        logger.info(f"Booking {self.id} marked as completed")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "provider_id": self.provider_id,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "total_amount": str(self.total_amount),
            "status": self.status,
            "payment_status": self.payment_status,
            "services": [item.to_dict() for item in self.line_items],
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancelled_by_role": self.cancelled_by_role,
            "cancelled_by_id": self.cancelled_by_id,
            "cancellation_reason": self.cancellation_reason,
        }


class BookingLineItem(Base):
    """One service within a booking, with its price and duration frozen."""

    __tablename__ = "booking_line_items"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_offering_id = Column(String(26), ForeignKey("service_offerings.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    service_name = Column(String(120), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    booking = relationship("Booking", back_populates="line_items")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_booking_line_items_duration_positive"),
        CheckConstraint("price >= 0", name="ck_booking_line_items_price_non_negative"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_offering_id,
            "name": self.service_name,
            "duration_minutes": self.duration_minutes,
            "price": str(self.price),
        }

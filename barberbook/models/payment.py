# barberbook/models/payment.py
"""Payment rows recorded once per successful charge tied to a booking."""

import logging

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .booking import PaymentStatus

logger = logging.getLogger(__name__)


class Payment(Base):
    """A verified gateway charge. At most one per booking, one per transaction."""

    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id"), nullable=False, unique=True, index=True
    )
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    transaction_id = Column(String(255), nullable=False, unique=True)
    gateway = Column(String(50), nullable=False)
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="payment")

    def __repr__(self) -> str:
        return f"<Payment {self.id}: booking={self.booking_id} txn={self.transaction_id}>"

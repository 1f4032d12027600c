# barberbook/models/provider.py
"""
Provider (barber) model.

A provider owns service offerings and accepts bookings. Its ability to use
provider-only write operations is gated by ``subscription_status``, which is
moved only by verified gateway events or by registration completion.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class SubscriptionState(str, Enum):
    """Provider access-gate states."""

    PENDING_MANDATE = "PENDING_MANDATE"
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


WRITE_ENABLED_STATES = frozenset({SubscriptionState.TRIAL, SubscriptionState.ACTIVE})


class Provider(Base):
    """Service professional who owns offerings and accepts bookings."""

    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(120), nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    mobile_number = Column(String(20), unique=True, nullable=False)
    shop_name = Column(String(120), nullable=False)
    shop_address = Column(Text, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    # Subscription gate
    subscription_status = Column(
        String(20), nullable=False, default=SubscriptionState.PENDING_MANDATE.value, index=True
    )
    gateway_customer_id = Column(String(255), nullable=True)
    external_subscription_id = Column(String(255), unique=True, nullable=True, index=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    subscription_event_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Occurrence time of the last applied gateway event",
    )
    registration_payment_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    services = relationship(
        "ServiceOffering", back_populates="provider", order_by="ServiceOffering.name"
    )
    bookings = relationship("Booking", back_populates="provider")

    __table_args__ = (
        CheckConstraint(
            "subscription_status IN ('PENDING_MANDATE', 'TRIAL', 'ACTIVE', 'FAILED', 'CANCELLED')",
            name="ck_providers_subscription_status",
        ),
    )

    @property
    def subscription_state(self) -> SubscriptionState:
        return SubscriptionState(self.subscription_status)

    @property
    def can_write(self) -> bool:
        return self.subscription_state in WRITE_ENABLED_STATES

    def last_event_at(self) -> Optional[datetime]:
        """Last applied event time, normalised to UTC (SQLite drops tzinfo)."""
        value = self.subscription_event_at
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def __repr__(self) -> str:
        return f"<Provider {self.id}: subscription={self.subscription_status}>"

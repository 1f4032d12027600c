# barberbook/models/service_offering.py
"""
Service offering model.

An offering belongs to exactly one provider. Deactivating it removes it from
every booking computation; bookings keep their own price/duration snapshots.
"""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class ServiceOffering(Base):
    """A bookable service (haircut, beard trim, ...) with a fixed duration and price."""

    __tablename__ = "service_offerings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(
        String(26),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(120), nullable=False)
    category = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    provider = relationship("Provider", back_populates="services")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_service_offerings_duration_positive"),
        CheckConstraint("price >= 0", name="ck_service_offerings_price_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<ServiceOffering {self.id}: {self.name} "
            f"{self.duration_minutes}min active={self.is_active}>"
        )

# barberbook/models/user.py
"""
User model for customers and platform admins.

Providers (barbers) live in their own table; see ``provider.py``.
"""

from enum import Enum
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Roles a ``users`` row can hold."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class User(Base):
    """A customer who books appointments, or an admin who supervises them."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(120), nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'admin')", name="ck_users_role"),
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: role={self.role}>"

# barberbook/models/__init__.py
"""
SQLAlchemy models for Barberbook.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import Booking, BookingLineItem, BookingStatus, PaymentStatus
from .payment import Payment
from .provider import WRITE_ENABLED_STATES, Provider, SubscriptionState
from .service_offering import ServiceOffering
from .user import User, UserRole
from .webhook_event import WebhookEvent

__all__ = [
    "Booking",
    "BookingLineItem",
    "BookingStatus",
    "Payment",
    "PaymentStatus",
    "Provider",
    "ServiceOffering",
    "SubscriptionState",
    "User",
    "UserRole",
    "WRITE_ENABLED_STATES",
    "WebhookEvent",
]

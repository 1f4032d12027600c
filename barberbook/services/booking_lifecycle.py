# barberbook/services/booking_lifecycle.py
"""
Booking status state machine.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    completed, cancelled: terminal

Who may drive each transition:

    confirm   owning provider, admin
    pay       owning customer
    cancel    owning customer, owning provider, admin
    decline   owning provider (pending only)
    complete  owning provider, admin
    view      owning customer, owning provider, admin
"""

from enum import Enum
from typing import Dict, FrozenSet

from ..core.exceptions import InvalidBookingTransitionException, NotAuthorizedException
from ..models.booking import Booking, BookingStatus
from ..principal import Principal

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


class BookingAction(str, Enum):
    VIEW = "view"
    CONFIRM = "confirm"
    PAY = "pay"
    CANCEL = "cancel"
    DECLINE = "decline"
    COMPLETE = "complete"


# Relationship to the booking -> actions it permits
_ACTION_RULES: Dict[str, FrozenSet[BookingAction]] = {
    "customer": frozenset({BookingAction.VIEW, BookingAction.PAY, BookingAction.CANCEL}),
    "provider": frozenset(
        {
            BookingAction.VIEW,
            BookingAction.CONFIRM,
            BookingAction.CANCEL,
            BookingAction.DECLINE,
            BookingAction.COMPLETE,
        }
    ),
    "admin": frozenset(
        {BookingAction.VIEW, BookingAction.CONFIRM, BookingAction.CANCEL, BookingAction.COMPLETE}
    ),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(booking: Booking, target: BookingStatus) -> None:
    """
    Raises:
        InvalidBookingTransitionException: If ``target`` is not reachable
    """
    current = BookingStatus(booking.status)
    if not can_transition(current, target):
        raise InvalidBookingTransitionException(booking.id, current.value, target.value)


def is_owner(booking: Booking, actor: Principal) -> bool:
    if actor.role == "customer":
        return booking.customer_id == actor.id
    if actor.role == "provider":
        return booking.provider_id == actor.id
    return False


def ensure_actor_allowed(booking: Booking, actor: Principal, action: BookingAction) -> None:
    """
    Only the owning customer, the owning provider or an admin act on a booking,
    and each of them only through the actions listed above.

    Raises:
        NotAuthorizedException: Otherwise
    """
    related = actor.role == "admin" or is_owner(booking, actor)
    if not related or action not in _ACTION_RULES.get(actor.role, frozenset()):
        raise NotAuthorizedException(
            f"Not allowed to {action.value} this booking",
            details={"booking_id": booking.id, "action": action.value},
        )

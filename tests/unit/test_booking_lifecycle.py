from types import SimpleNamespace

import pytest

from barberbook.core.exceptions import InvalidBookingTransitionException, NotAuthorizedException
from barberbook.models import BookingStatus
from barberbook.principal import AdminPrincipal, CustomerPrincipal, ProviderPrincipal
from barberbook.services.booking_lifecycle import (
    TERMINAL_STATUSES,
    BookingAction,
    can_transition,
    ensure_actor_allowed,
    ensure_transition,
)


def _booking(status=BookingStatus.PENDING, customer_id="cust-1", provider_id="prov-1"):
    return SimpleNamespace(
        id="booking-1", status=status.value, customer_id=customer_id, provider_id=provider_id
    )


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


@pytest.mark.parametrize(
    "current, target",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED),
        (BookingStatus.PENDING, BookingStatus.CANCELLED),
        (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    ensure_transition(_booking(current), target)


@pytest.mark.parametrize(
    "current, target",
    [
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
        (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
        (BookingStatus.CANCELLED, BookingStatus.CANCELLED),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidBookingTransitionException) as exc_info:
        ensure_transition(_booking(current), target)
    assert exc_info.value.details["current_status"] == current.value


class TestActorRules:
    def test_owning_customer_may_cancel_and_pay(self):
        booking = _booking()
        actor = CustomerPrincipal("cust-1")
        ensure_actor_allowed(booking, actor, BookingAction.CANCEL)
        ensure_actor_allowed(booking, actor, BookingAction.PAY)

    def test_customer_may_not_confirm(self):
        with pytest.raises(NotAuthorizedException):
            ensure_actor_allowed(_booking(), CustomerPrincipal("cust-1"), BookingAction.CONFIRM)

    def test_other_customer_may_not_view(self):
        with pytest.raises(NotAuthorizedException):
            ensure_actor_allowed(_booking(), CustomerPrincipal("cust-2"), BookingAction.VIEW)

    def test_owning_provider_may_confirm_and_decline(self):
        actor = ProviderPrincipal("prov-1")
        ensure_actor_allowed(_booking(), actor, BookingAction.CONFIRM)
        ensure_actor_allowed(_booking(), actor, BookingAction.DECLINE)

    def test_other_provider_may_not_confirm(self):
        with pytest.raises(NotAuthorizedException):
            ensure_actor_allowed(_booking(), ProviderPrincipal("prov-2"), BookingAction.CONFIRM)

    def test_admin_may_confirm_any_booking_but_not_pay(self):
        admin = AdminPrincipal("admin-1")
        ensure_actor_allowed(_booking(), admin, BookingAction.CONFIRM)
        with pytest.raises(NotAuthorizedException):
            ensure_actor_allowed(_booking(), admin, BookingAction.PAY)

import pytest

from barberbook.models import BookingStatus
from barberbook.services.conflict_checker import ConflictChecker
from tests.factories import BOOKING_DATE, create_booking_row, create_provider


@pytest.fixture
def checker(db) -> ConflictChecker:
    return ConflictChecker(db)


def test_overlapping_request_conflicts(db, checker, customer, provider):
    existing = create_booking_row(db, customer, provider, start_time="14:00", duration_minutes=30)

    conflicts = checker.find_conflicts(provider.id, BOOKING_DATE, 14 * 60 + 15, 30)

    assert [booking.id for booking in conflicts] == [existing.id]
    assert checker.has_conflict(provider.id, BOOKING_DATE, 13 * 60 + 45, 30)


def test_adjacent_request_does_not_conflict(db, checker, customer, provider):
    create_booking_row(db, customer, provider, start_time="14:00", duration_minutes=30)

    assert not checker.has_conflict(provider.id, BOOKING_DATE, 14 * 60 + 30, 30)
    assert not checker.has_conflict(provider.id, BOOKING_DATE, 13 * 60 + 30, 30)


@pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CONFIRMED])
def test_live_statuses_conflict(db, checker, customer, provider, status):
    create_booking_row(db, customer, provider, start_time="14:00", status=status)
    assert checker.has_conflict(provider.id, BOOKING_DATE, 14 * 60, 30)


@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_finished_bookings_do_not_conflict(db, checker, customer, provider, status):
    create_booking_row(db, customer, provider, start_time="14:00", status=status)
    assert not checker.has_conflict(provider.id, BOOKING_DATE, 14 * 60, 30)


def test_excluded_booking_is_skipped(db, checker, customer, provider):
    existing = create_booking_row(db, customer, provider, start_time="14:00")
    assert not checker.has_conflict(
        provider.id, BOOKING_DATE, 14 * 60, 30, exclude_booking_id=existing.id
    )


def test_other_provider_does_not_conflict(db, checker, customer, provider):
    other = create_provider(db)
    create_booking_row(db, customer, other, start_time="14:00")
    assert not checker.has_conflict(provider.id, BOOKING_DATE, 14 * 60, 30)


def test_conflicts_ordered_by_start(db, checker, customer, provider):
    late = create_booking_row(db, customer, provider, start_time="15:00", duration_minutes=30)
    early = create_booking_row(db, customer, provider, start_time="14:00", duration_minutes=30)

    conflicts = checker.find_conflicts(provider.id, BOOKING_DATE, 13 * 60 + 30, 180)

    assert [booking.id for booking in conflicts] == [early.id, late.id]


def test_uses_the_service_logger(checker):
    assert checker.logger.name == "ConflictChecker"

from datetime import timedelta

import pytest

from barberbook.core.exceptions import (
    InvalidProviderException,
    NoValidServicesException,
    RepositoryException,
    StorageException,
    ValidationException,
)
from barberbook.core.scheduling import ScheduleConfig
from barberbook.models import BookingStatus
from barberbook.repositories.conflict_checker_repository import ConflictCheckerRepository
from barberbook.services.slot_generator import SlotGenerator, SlotSequence
from tests.factories import (
    BOOKING_DATE,
    create_booking_row,
    create_provider,
    create_service,
    unknown_id,
)


@pytest.fixture
def generator(db, schedule) -> SlotGenerator:
    return SlotGenerator(db, schedule)


class TestSlotSequence:
    def test_empty_day_covers_whole_window(self, schedule):
        slots = list(SlotSequence(schedule, [], 30))
        assert slots[0] == "09:00"
        assert slots[-1] == "20:30"
        assert len(slots) == 47

    def test_iterating_twice_yields_same_slots(self, schedule):
        sequence = SlotSequence(schedule, [(600, 630)], 30)
        assert list(sequence) == list(sequence)

    def test_bundle_longer_than_window_is_empty(self):
        schedule = ScheduleConfig(work_start=600, work_end=660, slot_step_minutes=15)
        sequence = SlotSequence(schedule, [], 90)
        assert not sequence
        assert list(sequence) == []

    def test_fully_booked_day_is_empty(self, schedule):
        sequence = SlotSequence(schedule, [(schedule.work_start, schedule.work_end)], 15)
        assert not sequence


class TestGenerate:
    def test_existing_booking_blocks_overlapping_starts(self, db, generator, customer, provider):
        create_booking_row(db, customer, provider, start_time="10:00", duration_minutes=30)

        slots = list(generator.generate(provider.id, BOOKING_DATE, 30))

        assert "10:00" not in slots
        assert "10:15" not in slots
        # [09:45, 10:15) overlaps [10:00, 10:30)
        assert "09:45" not in slots
        assert "09:30" in slots
        assert "10:30" in slots

    def test_short_bundle_fits_right_before_booking(self, db, generator, customer, provider):
        create_booking_row(db, customer, provider, start_time="10:00", duration_minutes=30)

        slots = list(generator.generate(provider.id, BOOKING_DATE, 15))

        assert "09:45" in slots
        assert "10:00" not in slots
        assert "10:15" not in slots
        assert "10:30" in slots

    def test_cancelled_bookings_release_their_interval(self, db, generator, customer, provider):
        create_booking_row(
            db, customer, provider, start_time="10:00", status=BookingStatus.CANCELLED
        )
        slots = list(generator.generate(provider.id, BOOKING_DATE, 30))
        assert "10:00" in slots

    def test_other_dates_and_providers_are_ignored(self, db, generator, customer, provider):
        other = create_booking_row(
            db,
            customer,
            provider,
            start_time="10:00",
            booking_date=BOOKING_DATE + timedelta(days=1),
        )
        assert other.booking_date != BOOKING_DATE
        assert "10:00" in list(generator.generate(provider.id, BOOKING_DATE, 30))

    def test_slots_are_ascending_and_on_grid(self, db, generator, schedule, customer, provider):
        create_booking_row(db, customer, provider, start_time="12:00", duration_minutes=60)
        slots = list(generator.generate(provider.id, BOOKING_DATE, 45))
        assert slots == sorted(slots)
        for slot in slots:
            hours, minutes = map(int, slot.split(":"))
            assert schedule.is_on_grid(hours * 60 + minutes)

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration_rejected(self, generator, provider, duration):
        with pytest.raises(ValidationException) as exc_info:
            generator.generate(provider.id, BOOKING_DATE, duration)
        assert exc_info.value.code == "INVALID_DURATION"


class TestAvailableSlots:
    def test_sums_requested_services(self, generator, provider, haircut, beard_trim):
        result = generator.available_slots(provider.id, BOOKING_DATE, [haircut.id, beard_trim.id])
        assert result["total_duration"] == 45
        assert result["date"] == BOOKING_DATE
        assert result["slots"][-1] == "20:15"

    def test_inactive_services_are_ignored(self, db, generator, provider, haircut):
        retired = create_service(db, provider, "Facial", 60, "800.00", is_active=False)
        result = generator.available_slots(provider.id, BOOKING_DATE, [haircut.id, retired.id])
        assert result["total_duration"] == 30

    def test_no_valid_services(self, db, generator, provider):
        retired = create_service(db, provider, "Facial", 60, "800.00", is_active=False)
        with pytest.raises(NoValidServicesException):
            generator.available_slots(provider.id, BOOKING_DATE, [retired.id, unknown_id()])

    def test_unknown_provider(self, generator, haircut):
        with pytest.raises(InvalidProviderException):
            generator.available_slots(unknown_id(), BOOKING_DATE, [haircut.id])

    def test_unavailable_provider_offers_no_slots(self, db, generator):
        closed = create_provider(db, is_available=False)
        service = create_service(db, closed, "Haircut", 30, "300.00")

        with pytest.raises(InvalidProviderException) as exc_info:
            generator.available_slots(closed.id, BOOKING_DATE, [service.id])

        assert exc_info.value.code == "INVALID_PROVIDER"
        assert exc_info.value.details["provider_id"] == closed.id

    def test_storage_failure_is_reported_as_storage_error(
        self, generator, provider, haircut, monkeypatch
    ):
        def locked(*args, **kwargs):
            raise RepositoryException("Failed to get bookings: database is locked")

        monkeypatch.setattr(ConflictCheckerRepository, "get_bookings_for_date", locked)

        with pytest.raises(StorageException) as exc_info:
            generator.available_slots(provider.id, BOOKING_DATE, [haircut.id])
        assert exc_info.value.code == "STORAGE_ERROR"

"""
Concurrent booking against a file-backed SQLite database.

Each worker gets its own session and connection, the way two API requests
would, so the only thing keeping them apart is the storage transaction.
"""

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest
from sqlalchemy.orm import sessionmaker

from barberbook.core.exceptions import SlotAlreadyBookedException
from barberbook.core.scheduling import ScheduleConfig
from barberbook.database import Base
from barberbook.database.engines import build_engine
from barberbook.models import Booking
from barberbook.repositories.provider_repository import ProviderRepository
from barberbook.schemas.booking import BookingCreate
from barberbook.services.booking_service import BookingService
from barberbook.services.slot_generator import SlotGenerator
from tests.factories import (
    BOOKING_DATE,
    FakePaymentGateway,
    create_customer,
    create_provider,
    create_service,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def file_engine(tmp_path):
    engine = build_engine(
        f"sqlite+pysqlite:///{tmp_path / 'concurrency.db'}",
        pool_name="concurrency",
        sqlite_busy_timeout=15.0,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def seeded(session_factory):
    session = session_factory()
    try:
        customers = [create_customer(session), create_customer(session)]
        provider = create_provider(session)
        haircut = create_service(session, provider, "Haircut", 30, "300.00")
        return [c.id for c in customers], provider.id, haircut.id
    finally:
        session.close()


def _run_concurrently(session_factory, requests, workers=2):
    barrier = threading.Barrier(workers)
    schedule = ScheduleConfig()
    gateway = FakePaymentGateway()

    def attempt(args):
        customer_id, request = args
        session = session_factory()
        try:
            service = BookingService(session, schedule, gateway)
            barrier.wait(timeout=5)
            try:
                return service.create_booking(customer_id, request).id
            except SlotAlreadyBookedException as exc:
                return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(attempt, requests))


def test_exactly_one_of_two_identical_requests_wins(session_factory, seeded):
    customer_ids, provider_id, service_id = seeded
    request = BookingCreate(
        provider_id=provider_id,
        booking_date=BOOKING_DATE,
        start_time="14:00",
        service_ids=[service_id],
    )

    results = _run_concurrently(session_factory, [(cid, request) for cid in customer_ids])

    created = [r for r in results if isinstance(r, str)]
    rejected = [r for r in results if isinstance(r, SlotAlreadyBookedException)]
    assert len(created) == 1
    assert len(rejected) == 1
    assert rejected[0].details["conflicting_booking_ids"] == created

    session = session_factory()
    try:
        assert session.query(Booking).filter(Booking.provider_id == provider_id).count() == 1
    finally:
        session.close()


def test_overlapping_but_different_starts_also_serialise(session_factory, seeded):
    customer_ids, provider_id, service_id = seeded
    requests = [
        (
            customer_id,
            BookingCreate(
                provider_id=provider_id,
                booking_date=BOOKING_DATE,
                start_time=start,
                service_ids=[service_id],
            ),
        )
        for customer_id, start in zip(customer_ids, ["14:00", "14:15"])
    ]

    results = _run_concurrently(session_factory, requests)

    assert sum(isinstance(r, str) for r in results) == 1
    assert sum(isinstance(r, SlotAlreadyBookedException) for r in results) == 1


@pytest.fixture
def impatient_factory(tmp_path):
    engine = build_engine(
        f"sqlite+pysqlite:///{tmp_path / 'readers.db'}",
        pool_name="readers",
        sqlite_busy_timeout=0.5,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


def test_slot_query_does_not_wait_for_an_open_booking_transaction(impatient_factory):
    setup = impatient_factory()
    try:
        provider = create_provider(setup)
        provider_id = provider.id
    finally:
        setup.close()

    writer = impatient_factory()
    reader = impatient_factory()
    try:
        booking_service = BookingService(writer, ScheduleConfig(), FakePaymentGateway())
        with booking_service.transaction():
            assert ProviderRepository(writer).lock_for_booking(provider_id) is not None

            slots = list(
                SlotGenerator(reader, ScheduleConfig()).generate(provider_id, BOOKING_DATE, 30)
            )

            assert slots[0] == "09:00"
            assert len(slots) == 47
        # The writer commits while the reader's transaction is still open.
        assert reader.in_transaction()
    finally:
        reader.close()
        writer.close()

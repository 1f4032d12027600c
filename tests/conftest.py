# tests/conftest.py
"""
Shared fixtures: an in-memory SQLite database per test, the scheduling
grid, a fake payment gateway and a few seeded rows.
"""

import os

# Settings are read at import time; keep the test run off any real database.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from barberbook.core.scheduling import ScheduleConfig
from barberbook.database import Base
from barberbook.database.engines import build_engine
from barberbook.models import Provider, ServiceOffering, User

from .factories import FakePaymentGateway, create_customer, create_provider, create_service


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite+pysqlite://", pool_name="test", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def schedule() -> ScheduleConfig:
    return ScheduleConfig(work_start=9 * 60, work_end=21 * 60, slot_step_minutes=15)


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def customer(db) -> User:
    return create_customer(db)


@pytest.fixture
def provider(db) -> Provider:
    return create_provider(db)


@pytest.fixture
def haircut(db, provider) -> ServiceOffering:
    return create_service(db, provider, "Haircut", 30, "300.00")


@pytest.fixture
def beard_trim(db, provider) -> ServiceOffering:
    return create_service(db, provider, "Beard trim", 15, "150.00")

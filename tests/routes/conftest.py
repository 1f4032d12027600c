import pytest
from fastapi.testclient import TestClient

from barberbook.api.dependencies.database import get_db
from barberbook.api.dependencies.services import get_payment_gateway, get_schedule_config
from barberbook.auth import create_access_token
from barberbook.main import app


@pytest.fixture
def client(db, gateway, schedule):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_schedule_config] = lambda: schedule
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(subject: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject, role)}"}

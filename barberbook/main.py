# barberbook/main.py
"""
Barberbook API application.

Routers are mounted under ``/api/v1``; the Prometheus endpoint lives at
``/metrics/prometheus`` outside the versioned API.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from . import __version__
from .core.config import settings
from .database import Base, engine
from .errors import register_error_handlers
from .routes.v1 import (
    bookings as bookings_v1,
    metrics as metrics_v1,
    provider_services as provider_services_v1,
    providers as providers_v1,
    slots as slots_v1,
    webhooks_subscription as webhooks_subscription_v1,
)

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup and dispose of pooled connections on shutdown."""
    logger.info("Barberbook API starting up (environment=%s)", settings.environment)
    logger.info("Scheduling grid: %s", settings.schedule_config().describe())
    # Import models so every table is registered on the metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    logger.info("Barberbook API shutting down")
    engine.dispose()


app = FastAPI(
    title="Barberbook API",
    description="Booking core for independent barbers and salons",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

# Mount v1 routes
api_v1.include_router(providers_v1.router, prefix="/providers")
api_v1.include_router(slots_v1.router)
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(provider_services_v1.router, prefix="/provider/services")
api_v1.include_router(webhooks_subscription_v1.router, prefix="/webhooks")

app.include_router(api_v1)
app.include_router(metrics_v1.router, prefix="/metrics")


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"status": "healthy", "version": __version__, "environment": settings.environment}

# barberbook/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import DomainException
from .scheduling import ScheduleConfig

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    log_level: str = Field(default="INFO", description="Root log level for the API process")

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///./barberbook.db",
        description="SQLAlchemy database URL",
    )
    database_pool_size: int = Field(default=5, ge=1)
    database_max_overflow: int = Field(default=5, ge=0)
    database_pool_timeout: int = Field(
        default=5,
        ge=1,
        description="Seconds to wait for a pooled connection before failing",
    )
    sqlite_busy_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds SQLite waits on a locked database before raising",
    )

    # Auth tokens
    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        description="HMAC key used to sign bearer tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24, ge=1)

    # Scheduling grid
    work_day_start: str = Field(default="09:00", description="Opening time, HH:MM")
    work_day_end: str = Field(default="21:00", description="Closing time, HH:MM")
    slot_step_minutes: int = Field(default=15, ge=1, le=240)

    # Payment gateway
    payment_gateway: Literal["stripe"] = Field(default="stripe")
    stripe_secret_key: Optional[SecretStr] = Field(default=None)
    stripe_webhook_secret: Optional[SecretStr] = Field(default=None)
    stripe_subscription_price_id: Optional[str] = Field(
        default=None,
        description="Recurring price used for provider subscriptions",
    )
    stripe_webhook_tolerance_seconds: int = Field(default=300, ge=1)
    currency: str = Field(default="INR", min_length=3, max_length=3)

    # Provider onboarding
    registration_fee_amount: Decimal = Field(default=Decimal("499.00"), ge=0)
    subscription_trial_days: int = Field(default=90, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_schedule(self) -> "Settings":
        try:
            self.schedule_config()
        except DomainException as exc:
            raise ValueError(f"Invalid scheduling window: {exc.message}") from exc
        if self.environment == "production" and (
            self.secret_key.get_secret_value() == "change-me-in-production"
        ):
            raise ValueError("SECRET_KEY must be set in production")
        return self

    def schedule_config(self) -> ScheduleConfig:
        """Build the scheduling grid injected into slot generation and booking."""
        return ScheduleConfig.from_strings(
            self.work_day_start,
            self.work_day_end,
            self.slot_step_minutes,
        )


settings = Settings()

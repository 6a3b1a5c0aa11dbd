"""Application configuration via pydantic settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Facility Booking Engine API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    commission_rate: Decimal = Field(Decimal("0.15"), alias="PLATFORM_COMMISSION_RATE")
    min_advance_hours: int = Field(24, alias="BOOKING_MIN_ADVANCE_HOURS")
    max_advance_days: int = Field(90, alias="BOOKING_MAX_ADVANCE_DAYS")
    min_duration_hours: Decimal = Field(Decimal("1"), alias="BOOKING_MIN_DURATION_HOURS")
    max_duration_hours: Decimal = Field(Decimal("8"), alias="BOOKING_MAX_DURATION_HOURS")
    max_per_day: int = Field(5, alias="BOOKING_MAX_PER_DAY")
    max_pending: int = Field(10, alias="BOOKING_MAX_PENDING")
    max_concurrent: int | None = Field(default=None, alias="BOOKING_MAX_CONCURRENT")
    min_price: Decimal = Field(Decimal("15"), alias="MIN_BOOKING_PRICE")
    max_price: Decimal = Field(Decimal("5000"), alias="MAX_BOOKING_PRICE")
    currency: str = Field("EUR", alias="BOOKING_CURRENCY")
    quota_timezone: str = Field("UTC", alias="BOOKING_QUOTA_TIMEZONE")

    full_refund_hours: int = Field(48, alias="CANCELLATION_FULL_REFUND_HOURS")
    partial_refund_hours: int = Field(24, alias="CANCELLATION_PARTIAL_REFUND_HOURS")
    partial_refund_rate: Decimal = Field(
        Decimal("0.25"), alias="CANCELLATION_PARTIAL_REFUND_RATE"
    )

    unpaid_expiry_minutes: int = Field(30, alias="BOOKING_UNPAID_EXPIRY_MINUTES")
    auto_confirm_on_payment: bool = Field(True, alias="BOOKING_AUTO_CONFIRM_ON_PAYMENT")
    create_max_attempts: int = Field(3, alias="BOOKING_CREATE_MAX_ATTEMPTS")

    review_deadline_days: int = Field(30, alias="REVIEW_DEADLINE_DAYS")
    review_min_length: int = Field(20, alias="REVIEW_MIN_LENGTH")
    review_max_length: int = Field(1000, alias="REVIEW_MAX_LENGTH")
    review_max_photos: int = Field(5, alias="REVIEW_MAX_PHOTOS")
    rating_window: int = Field(30, alias="RATING_WINDOW")
    reminder_lead_hours: int = Field(24, alias="BOOKING_REMINDER_LEAD_HOURS")
    review_reminder_days: int = Field(7, alias="REVIEW_REMINDER_DAYS")

    sweeps_enabled: bool = Field(False, alias="SWEEPS_ENABLED")
    progress_sweep_seconds: int = Field(300, alias="SWEEP_PROGRESS_SECONDS")
    expiry_sweep_seconds: int = Field(600, alias="SWEEP_EXPIRY_SECONDS")
    reminder_sweep_seconds: int = Field(3600, alias="SWEEP_REMINDER_SECONDS")

    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"], alias="CORS_ALLOWLIST"
    )
    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_bookings: str = Field("10/hour", alias="RATE_LIMIT_BOOKINGS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


class BookingPolicy(BaseModel):
    """Slim view of the booking rules the engine enforces."""

    commission_rate: Decimal = Decimal("0.15")
    min_advance_hours: int = 24
    max_advance_days: int = 90
    min_duration_hours: Decimal = Decimal("1")
    max_duration_hours: Decimal = Decimal("8")
    max_per_day: int = 5
    max_pending: int = 10
    max_concurrent: int | None = None
    min_price: Decimal = Decimal("15")
    max_price: Decimal = Decimal("5000")
    currency: str = "EUR"
    quota_timezone: str = "UTC"
    full_refund_hours: int = 48
    partial_refund_hours: int = 24
    partial_refund_rate: Decimal = Decimal("0.25")
    unpaid_expiry_minutes: int = 30
    auto_confirm_on_payment: bool = True
    create_max_attempts: int = 3
    review_deadline_days: int = 30
    review_min_length: int = 20
    review_max_length: int = 1000
    review_max_photos: int = 5
    rating_window: int = 30
    reminder_lead_hours: int = 24
    review_reminder_days: int = 7


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_booking_policy() -> BookingPolicy:
    """Return booking rules derived from the configured settings."""

    settings = get_settings()
    return BookingPolicy.model_validate(
        settings.model_dump(include=set(BookingPolicy.model_fields))
    )

"""Pydantic schemas for reservations."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_engine.core.clock import coerce_utc
from booking_engine.models.reservation import (
    CancellationInitiator,
    PaymentStatus,
    ReservationStatus,
)


class ReservationCreate(BaseModel):
    """Payload for requesting a reservation."""

    facility_id: uuid.UUID
    space_id: uuid.UUID | None = None
    start_at: datetime
    end_at: datetime
    notes: str | None = Field(default=None, max_length=500)


class ReservationCancel(BaseModel):
    """Payload for cancelling a reservation."""

    reason: str | None = Field(default=None, max_length=512)


class ReservationRead(BaseModel):
    """Serialized reservation representation."""

    id: uuid.UUID
    consumer_id: str
    owner_id: str
    facility_id: uuid.UUID
    space_id: uuid.UUID | None = None
    start_at: datetime
    end_at: datetime
    duration_hours: Decimal
    hourly_rate: Decimal
    subtotal: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    total_price: Decimal
    currency: str
    status: ReservationStatus
    payment_status: PaymentStatus
    cancellation_reason: str | None = None
    cancellation_initiated_by: CancellationInitiator | None = None
    refund_rate: Decimal | None = None
    refund_amount: Decimal | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    review_deadline: datetime | None = None
    has_review: bool = False
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator(
        "start_at",
        "end_at",
        "confirmed_at",
        "cancelled_at",
        "completed_at",
        "review_deadline",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return coerce_utc(value) if value is not None else None

"""Reservation models."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from booking_engine.models.facility import Facility, Space


class ReservationStatus(str, enum.Enum):
    """Lifecycle states for reservations."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Payment state tracked alongside the lifecycle status."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancellationInitiator(str, enum.Enum):
    """Party credited with a cancellation."""

    CONSUMER = "consumer"
    OWNER = "owner"
    SYSTEM = "system"


ACTIVE_STATUSES = frozenset(
    {
        ReservationStatus.PENDING,
        ReservationStatus.CONFIRMED,
        ReservationStatus.IN_PROGRESS,
    }
)
TERMINAL_STATUSES = frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED})


class Reservation(TimestampMixin, Base):
    """A consumer's claim on a facility for a fixed time interval."""

    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_reservation_interval"),
        CheckConstraint(
            "round(subtotal + commission_amount, 2) = round(total_price, 2)",
            name="ck_reservation_total",
        ),
        Index("ix_reservations_facility_status", "facility_id", "status"),
        Index("ix_reservations_consumer_status", "consumer_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    consumer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    facility_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities.id", ondelete="RESTRICT"), nullable=False
    )
    space_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("spaces.id", ondelete="SET NULL"), nullable=True
    )

    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_hours: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)

    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus), default=ReservationStatus.PENDING, nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_reference: Mapped[str | None] = mapped_column(String(255))
    payment_failure_reason: Mapped[str | None] = mapped_column(String(512))

    cancellation_reason: Mapped[str | None] = mapped_column(String(512))
    cancellation_initiated_by: Mapped[CancellationInitiator | None] = mapped_column(
        Enum(CancellationInitiator)
    )
    refund_rate: Mapped[Decimal | None] = mapped_column(Numeric(3, 2))
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    has_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    review_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    review_reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notes: Mapped[str | None] = mapped_column(String(500))

    facility: Mapped["Facility"] = relationship("Facility", back_populates="reservations")
    space: Mapped["Space | None"] = relationship("Space")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

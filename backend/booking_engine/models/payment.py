"""Charge and refund requests handed to the payment gateway."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin


class GatewayRequestStatus(str, enum.Enum):
    QUEUED = "queued"
    SUBMITTED = "submitted"
    FAILED = "failed"


class ChargeRequest(TimestampMixin, Base):
    """Request to capture the total price of a new reservation."""

    __tablename__ = "charge_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    reservation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    request_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, default=dict, nullable=False
    )
    status: Mapped[GatewayRequestStatus] = mapped_column(
        Enum(GatewayRequestStatus), default=GatewayRequestStatus.QUEUED, nullable=False
    )


class RefundRequest(TimestampMixin, Base):
    """Request to refund part or all of a captured payment."""

    __tablename__ = "refund_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    reservation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(255))
    initiated_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(512))
    status: Mapped[GatewayRequestStatus] = mapped_column(
        Enum(GatewayRequestStatus), default=GatewayRequestStatus.QUEUED, nullable=False
    )

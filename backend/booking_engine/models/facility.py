"""Bookable facilities and their optional sub-spaces."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from booking_engine.models.reservation import Reservation


class Facility(TimestampMixin, Base):
    """A facility owned by a resource owner and booked by the hour."""

    __tablename__ = "facilities"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    total_bookings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[Decimal] = mapped_column(
        Numeric(2, 1), default=Decimal("0.0"), nullable=False
    )
    reviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category_ratings: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )

    spaces: Mapped[list["Space"]] = relationship(
        "Space", back_populates="facility", cascade="all, delete-orphan"
    )
    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation", back_populates="facility"
    )


class Space(TimestampMixin, Base):
    """A bookable sub-area of a facility (court, room, lane)."""

    __tablename__ = "spaces"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    facility_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    facility: Mapped["Facility"] = relationship("Facility", back_populates="spaces")

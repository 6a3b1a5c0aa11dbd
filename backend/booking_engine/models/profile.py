"""Rating-bearing profiles for consumers and facility owners."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin


class ConsumerProfile(TimestampMixin, Base):
    """Profile of a consumer (coach) keyed by the external user id."""

    __tablename__ = "consumer_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255))
    rating: Mapped[Decimal] = mapped_column(
        Numeric(2, 1), default=Decimal("0.0"), nullable=False
    )
    reviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category_ratings: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )


class OwnerProfile(TimestampMixin, Base):
    """Profile of a facility owner keyed by the external user id."""

    __tablename__ = "owner_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255))
    rating: Mapped[Decimal] = mapped_column(
        Numeric(2, 1), default=Decimal("0.0"), nullable=False
    )
    reviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

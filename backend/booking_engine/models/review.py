"""Review models."""

from __future__ import annotations

import enum
import uuid
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.db.base import Base
from booking_engine.models.mixins import TimestampMixin


class ReviewType(str, enum.Enum):
    """Direction of a review between the two parties of a reservation."""

    CONSUMER_TO_OWNER = "consumer_to_owner"
    OWNER_TO_CONSUMER = "owner_to_consumer"


class ReviewReportStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class Review(TimestampMixin, Base):
    """Rating left by one party of a completed reservation."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("reservation_id", "reviewer_id", name="uq_review_reviewer"),
        Index("ix_reviews_reviewee_type", "reviewee_id", "review_type", "is_hidden"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    reservation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reservations.id"), nullable=False
    )
    reviewer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reviewee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    review_type: Mapped[ReviewType] = mapped_column(Enum(ReviewType), nullable=False)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    category_ratings: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    photos: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_reported: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ReviewReport(TimestampMixin, Base):
    """A user's moderation report against a review."""

    __tablename__ = "review_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(String(1024), nullable=False)
    status: Mapped[ReviewReportStatus] = mapped_column(
        Enum(ReviewReportStatus), default=ReviewReportStatus.PENDING, nullable=False
    )

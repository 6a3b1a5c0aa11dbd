"""Pydantic schemas for reviews."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_engine.core.clock import coerce_utc
from booking_engine.models.review import ReviewType


class ReviewCreate(BaseModel):
    """Payload for reviewing the other party of a completed reservation."""

    reservation_id: uuid.UUID
    reviewee_id: str = Field(min_length=1, max_length=64)
    review_type: ReviewType | None = None
    overall_rating: int
    category_ratings: dict[str, float] = Field(default_factory=dict)
    comment: str
    photos: list[str] = Field(default_factory=list)


class ReviewRead(BaseModel):
    id: uuid.UUID
    reservation_id: uuid.UUID
    reviewer_id: str
    reviewee_id: str
    review_type: ReviewType
    overall_rating: int
    category_ratings: dict[str, float]
    comment: str
    photos: list[str]
    is_hidden: bool
    is_reported: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return coerce_utc(value)


class ReviewVisibilityUpdate(BaseModel):
    is_hidden: bool


class ReviewReportCreate(BaseModel):
    reason: str = Field(min_length=1, max_length=1024)


class ReviewReportRead(BaseModel):
    id: uuid.UUID
    review_id: uuid.UUID
    reporter_id: str
    reason: str

    model_config = ConfigDict(from_attributes=True)


class ReviewStatsRead(BaseModel):
    """Aggregate view of a reviewee's visible reviews."""

    average: Decimal
    total: int
    distribution: dict[int, int]
    category_averages: dict[str, Decimal] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

"""Rating aggregation for facilities, owners and consumers.

Aggregates are always recomputed from the visible reviews rather than
adjusted incrementally, so any order of review events converges on the
same stored figures.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import coerce_utc
from booking_engine.models import (
    ConsumerProfile,
    Facility,
    OwnerProfile,
    Review,
    ReviewType,
)

logger = logging.getLogger(__name__)

RATING_PLACES = Decimal("0.1")


@dataclass(slots=True, frozen=True)
class RatingSample:
    review_id: uuid.UUID
    created_at: datetime
    overall_rating: int
    category_ratings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class RatingSummary:
    average: Decimal
    reviews_count: int
    category_averages: dict[str, Decimal] = field(default_factory=dict)

    def category_payload(self) -> dict[str, float]:
        return {name: float(value) for name, value in self.category_averages.items()}


def _round(total: Decimal, count: int) -> Decimal:
    return (total / Decimal(count)).quantize(RATING_PLACES, rounding=ROUND_HALF_UP)


def _newest_first(samples: Iterable[RatingSample]) -> list[RatingSample]:
    return sorted(
        samples,
        key=lambda sample: (coerce_utc(sample.created_at), str(sample.review_id)),
        reverse=True,
    )


def aggregate_ratings(
    samples: Iterable[RatingSample], *, window: int | None = None
) -> RatingSummary:
    """Average the newest ``window`` samples (all of them when ``window`` is None).

    Samples are ordered by creation time with the review id as a tie
    breaker, so the result does not depend on the order they arrive in.
    Category averages only consider samples that carry that category.
    ``reviews_count`` is always the number of samples supplied.
    """
    ordered = _newest_first(samples)
    if not ordered:
        return RatingSummary(average=Decimal("0.0"), reviews_count=0)

    considered = ordered if window is None else ordered[: max(window, 1)]
    overall = sum((Decimal(s.overall_rating) for s in considered), Decimal(0))

    category_totals: dict[str, Decimal] = {}
    category_counts: dict[str, int] = {}
    for sample in considered:
        for name, value in (sample.category_ratings or {}).items():
            if value is None:
                continue
            category_totals[name] = category_totals.get(name, Decimal(0)) + Decimal(
                str(value)
            )
            category_counts[name] = category_counts.get(name, 0) + 1

    return RatingSummary(
        average=_round(overall, len(considered)),
        reviews_count=len(ordered),
        category_averages={
            name: _round(total, category_counts[name])
            for name, total in sorted(category_totals.items())
        },
    )


async def load_samples(
    session: AsyncSession, *, reviewee_id: str, review_type: ReviewType
) -> Sequence[RatingSample]:
    stmt = select(Review).where(
        Review.reviewee_id == reviewee_id,
        Review.review_type == review_type,
        Review.is_hidden.is_(False),
    )
    reviews = (await session.execute(stmt)).scalars().all()
    return [
        RatingSample(
            review_id=review.id,
            created_at=review.created_at,
            overall_rating=review.overall_rating,
            category_ratings=review.category_ratings or {},
        )
        for review in reviews
    ]


async def recompute_rating(
    session: AsyncSession,
    *,
    reviewee_id: str,
    review_type: ReviewType,
    window: int | None = None,
) -> RatingSummary:
    samples = await load_samples(
        session, reviewee_id=reviewee_id, review_type=review_type
    )
    return aggregate_ratings(samples, window=window)


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def resolve_rating_targets(
    session: AsyncSession, *, reviewee_id: str, review_type: ReviewType
) -> list[Facility | OwnerProfile | ConsumerProfile]:
    """Return every record that displays the reviewee's rating.

    Owner-to-consumer reviews land on the consumer profile. Consumer-to-owner
    reviews addressed to a facility land on that facility; addressed to an
    owner they land on the owner profile and each of the owner's facilities.
    Missing profiles are created on the fly.
    """
    if review_type == ReviewType.OWNER_TO_CONSUMER:
        profile = await session.get(ConsumerProfile, reviewee_id)
        if profile is None:
            profile = ConsumerProfile(id=reviewee_id)
            session.add(profile)
        return [profile]

    facility_id = _parse_uuid(reviewee_id)
    if facility_id is not None:
        facility = await session.get(Facility, facility_id)
        if facility is not None:
            return [facility]

    targets: list[Facility | OwnerProfile | ConsumerProfile] = []
    owner = await session.get(OwnerProfile, reviewee_id)
    if owner is None:
        owner = OwnerProfile(id=reviewee_id)
        session.add(owner)
    targets.append(owner)
    facilities = await session.execute(
        select(Facility).where(Facility.owner_id == reviewee_id).order_by(Facility.id)
    )
    targets.extend(facilities.scalars().all())
    return targets


async def apply_rating(
    session: AsyncSession,
    *,
    reviewee_id: str,
    review_type: ReviewType,
    window: int | None = None,
) -> RatingSummary:
    """Recompute the reviewee's rating and write it to every target record."""
    summary = await recompute_rating(
        session, reviewee_id=reviewee_id, review_type=review_type, window=window
    )
    targets = await resolve_rating_targets(
        session, reviewee_id=reviewee_id, review_type=review_type
    )
    for target in targets:
        target.rating = summary.average
        target.reviews_count = summary.reviews_count
        if not isinstance(target, OwnerProfile):
            target.category_ratings = summary.category_payload()
    await session.flush()
    logger.info(
        "Rating for %s (%s) is now %s over %s reviews",
        reviewee_id,
        review_type.value,
        summary.average,
        summary.reviews_count,
    )
    return summary

"""Reviews left by the parties of completed reservations."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import coerce_utc, utcnow
from booking_engine.core.config import BookingPolicy, get_booking_policy
from booking_engine.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from booking_engine.models import (
    NotificationType,
    Reservation,
    ReservationStatus,
    Review,
    ReviewReport,
    ReviewType,
)
from booking_engine.services import audit_service, rating_service
from booking_engine.services.intents import (
    Intent,
    NotificationIntent,
    RatingRecomputeIntent,
)

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass(slots=True)
class ReviewResult:
    review: Review
    intents: list[Intent] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class ReviewStats:
    average: Decimal
    total: int
    distribution: dict[int, int]
    category_averages: dict[str, Decimal]


def _validate_rating(value: Any, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError(f"{label} must be a number")
    if value < MIN_RATING or value > MAX_RATING:
        raise ValidationError(f"{label} must be between {MIN_RATING} and {MAX_RATING}")


def _validate_content(
    *,
    overall_rating: int,
    category_ratings: Mapping[str, Any],
    comment: str,
    photos: Sequence[str],
    policy: BookingPolicy,
) -> None:
    if isinstance(overall_rating, bool) or not isinstance(overall_rating, int):
        raise ValidationError("Overall rating must be a whole number")
    _validate_rating(overall_rating, "Overall rating")
    for name, value in category_ratings.items():
        _validate_rating(value, f"Rating for {name}")
    length = len(comment.strip())
    if length < policy.review_min_length or length > policy.review_max_length:
        raise ValidationError(
            "Comment must be between "
            f"{policy.review_min_length} and {policy.review_max_length} characters"
        )
    if len(photos) > policy.review_max_photos:
        raise ValidationError(f"A review can have at most {policy.review_max_photos} photos")


def _review_deadline(reservation: Reservation, policy: BookingPolicy) -> datetime:
    if reservation.review_deadline is not None:
        return coerce_utc(reservation.review_deadline)
    finished = reservation.completed_at or reservation.end_at
    return coerce_utc(finished) + timedelta(days=policy.review_deadline_days)


def _resolve_direction(
    reservation: Reservation,
    *,
    reviewer_id: str,
    reviewee_id: str,
    review_type: ReviewType | None,
) -> tuple[ReviewType, str]:
    """Return the review type and the party whose inbox gets the notice."""
    if reviewer_id == reservation.consumer_id:
        expected = ReviewType.CONSUMER_TO_OWNER
        allowed = {reservation.owner_id, str(reservation.facility_id)}
        recipient_id = reservation.owner_id
    elif reviewer_id == reservation.owner_id:
        expected = ReviewType.OWNER_TO_CONSUMER
        allowed = {reservation.consumer_id}
        recipient_id = reservation.consumer_id
    else:
        raise PermissionDeniedError("You are not a party to this reservation")

    if review_type is not None and review_type != expected:
        raise ValidationError("Review type does not match your role in the reservation")
    if reviewee_id not in allowed:
        raise ValidationError("Reviewee is not the other party of the reservation")
    return expected, recipient_id


async def create_review(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    reviewer_id: str,
    reviewee_id: str,
    overall_rating: int,
    comment: str,
    review_type: ReviewType | None = None,
    category_ratings: Mapping[str, Any] | None = None,
    photos: Sequence[str] | None = None,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> ReviewResult:
    """Record one party's review of a completed reservation."""
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    category_ratings = dict(category_ratings or {})
    photos = list(photos or [])

    reservation = await session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    if reservation.status != ReservationStatus.COMPLETED:
        raise PreconditionError("Only completed reservations can be reviewed")
    review_type, recipient_id = _resolve_direction(
        reservation,
        reviewer_id=reviewer_id,
        reviewee_id=reviewee_id,
        review_type=review_type,
    )
    if now > _review_deadline(reservation, policy):
        raise PreconditionError("The review period for this reservation has ended")
    _validate_content(
        overall_rating=overall_rating,
        category_ratings=category_ratings,
        comment=comment,
        photos=photos,
        policy=policy,
    )

    existing = await session.execute(
        select(Review.id).where(
            Review.reservation_id == reservation.id, Review.reviewer_id == reviewer_id
        )
    )
    if existing.first() is not None:
        raise ConflictError("You have already reviewed this reservation")

    review = Review(
        reservation_id=reservation.id,
        reviewer_id=reviewer_id,
        reviewee_id=reviewee_id,
        review_type=review_type,
        overall_rating=overall_rating,
        category_ratings=category_ratings,
        comment=comment.strip(),
        photos=photos,
        created_at=now,
        updated_at=now,
    )
    session.add(review)
    reservation.has_review = True
    try:
        await session.flush()
        audit_service.add_event(
            session,
            event_type="review.created",
            actor_id=reviewer_id,
            reservation_id=reservation.id,
            payload={"review_id": str(review.id), "overall_rating": overall_rating},
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("You have already reviewed this reservation") from exc

    logger.info("Review %s recorded for %s", review.id, reviewee_id)
    return ReviewResult(
        review=review,
        intents=[
            RatingRecomputeIntent(reviewee_id=reviewee_id, review_type=review_type),
            NotificationIntent(
                type=NotificationType.REVIEW_RECEIVED,
                recipient_id=recipient_id,
                payload={
                    "review_id": str(review.id),
                    "reservation_id": str(reservation.id),
                    "reviewer_id": reviewer_id,
                    "overall_rating": overall_rating,
                },
            ),
        ],
    )


async def _get_review(session: AsyncSession, review_id: uuid.UUID) -> Review:
    review = await session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    return review


async def set_review_visibility(
    session: AsyncSession,
    *,
    review_id: uuid.UUID,
    is_hidden: bool,
    actor_id: str | None = None,
) -> ReviewResult:
    """Hide or unhide a review; aggregates are rebuilt from scratch afterwards."""
    review = await _get_review(session, review_id)
    if review.is_hidden == is_hidden:
        return ReviewResult(review=review)
    review.is_hidden = is_hidden
    audit_service.add_event(
        session,
        event_type="review.hidden" if is_hidden else "review.unhidden",
        actor_id=actor_id,
        reservation_id=review.reservation_id,
        payload={"review_id": str(review.id)},
    )
    await session.commit()
    return ReviewResult(
        review=review,
        intents=[
            RatingRecomputeIntent(
                reviewee_id=review.reviewee_id, review_type=review.review_type, full=True
            )
        ],
    )


async def delete_review(
    session: AsyncSession, *, review_id: uuid.UUID, actor_id: str | None = None
) -> list[Intent]:
    review = await _get_review(session, review_id)
    reviewee_id, review_type = review.reviewee_id, review.review_type
    await session.execute(delete(ReviewReport).where(ReviewReport.review_id == review.id))
    audit_service.add_event(
        session,
        event_type="review.deleted",
        actor_id=actor_id,
        reservation_id=review.reservation_id,
        payload={"review_id": str(review.id)},
    )
    await session.delete(review)
    await session.commit()
    return [RatingRecomputeIntent(reviewee_id=reviewee_id, review_type=review_type, full=True)]


async def report_review(
    session: AsyncSession, *, review_id: uuid.UUID, reporter_id: str, reason: str
) -> ReviewReport:
    review = await _get_review(session, review_id)
    if not reason or not reason.strip():
        raise ValidationError("A reason is required")
    if reporter_id == review.reviewer_id:
        raise PreconditionError("You cannot report your own review")
    report = ReviewReport(review_id=review.id, reporter_id=reporter_id, reason=reason.strip())
    session.add(report)
    review.is_reported = True
    await session.commit()
    logger.info("Review %s reported", review.id)
    return report


async def list_reviews(
    session: AsyncSession,
    *,
    reviewee_id: str,
    review_type: ReviewType | None = None,
    include_hidden: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> Sequence[Review]:
    stmt = select(Review).where(Review.reviewee_id == reviewee_id)
    if review_type is not None:
        stmt = stmt.where(Review.review_type == review_type)
    if not include_hidden:
        stmt = stmt.where(Review.is_hidden.is_(False))
    stmt = stmt.order_by(Review.created_at.desc(), Review.id.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def review_stats(
    session: AsyncSession, *, reviewee_id: str, review_type: ReviewType | None = None
) -> ReviewStats:
    """Summarize all visible reviews of a reviewee, star distribution included."""
    filters = [Review.reviewee_id == reviewee_id, Review.is_hidden.is_(False)]
    if review_type is not None:
        filters.append(Review.review_type == review_type)

    reviews = (await session.execute(select(Review).where(*filters))).scalars().all()
    distribution = {stars: 0 for stars in range(MIN_RATING, MAX_RATING + 1)}
    for review in reviews:
        distribution[review.overall_rating] += 1

    summary = rating_service.aggregate_ratings(
        rating_service.RatingSample(
            review_id=review.id,
            created_at=review.created_at,
            overall_rating=review.overall_rating,
            category_ratings=review.category_ratings or {},
        )
        for review in reviews
    )
    return ReviewStats(
        average=summary.average,
        total=summary.reviews_count,
        distribution=distribution,
        category_averages=summary.category_averages,
    )

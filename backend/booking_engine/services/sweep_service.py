"""Time-driven lifecycle sweeps.

Each sweep selects candidates and then advances every row with a
conditional update keyed on the status it was selected in. A row that
changed in between is skipped, which makes concurrent or repeated sweeps
harmless.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from booking_engine.core.clock import coerce_utc, utcnow
from booking_engine.core.config import BookingPolicy, get_booking_policy
from booking_engine.models import (
    CancellationInitiator,
    NotificationType,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    Review,
)
from booking_engine.services import audit_service
from booking_engine.services.intents import Intent, notify

logger = logging.getLogger(__name__)

EXPIRY_REASON = "Payment not completed in time"


@dataclass(slots=True)
class SweepResult:
    processed: int = 0
    skipped: int = 0
    intents: list[Intent] = field(default_factory=list)


async def _advance(
    session: AsyncSession,
    reservation: Reservation,
    *,
    expected: ReservationStatus,
    values: dict[str, Any],
    guards: Sequence[ColumnElement[bool]] = (),
) -> bool:
    stmt = (
        update(Reservation)
        .where(Reservation.id == reservation.id, Reservation.status == expected, *guards)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        return False
    for key, value in values.items():
        set_committed_value(reservation, key, value)
    return True


async def start_due_reservations(
    session: AsyncSession, *, now: datetime | None = None
) -> SweepResult:
    """Move confirmed reservations whose interval has begun to in-progress."""
    now = coerce_utc(now or utcnow())
    stmt = select(Reservation).where(
        Reservation.status == ReservationStatus.CONFIRMED,
        Reservation.start_at <= now,
        Reservation.end_at > now,
    )
    stmt = stmt.execution_options(populate_existing=True)
    candidates = (await session.execute(stmt)).scalars().all()
    outcome = SweepResult()
    for reservation in candidates:
        advanced = await _advance(
            session,
            reservation,
            expected=ReservationStatus.CONFIRMED,
            values={"status": ReservationStatus.IN_PROGRESS, "updated_at": now},
        )
        if advanced:
            outcome.processed += 1
        else:
            outcome.skipped += 1
    await session.commit()
    if outcome.processed:
        logger.info("Started %s reservations", outcome.processed)
    return outcome


async def complete_due_reservations(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Complete confirmed or in-progress reservations whose interval has ended."""
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    review_deadline = now + timedelta(days=policy.review_deadline_days)
    stmt = select(Reservation).where(
        Reservation.status.in_(
            [ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS]
        ),
        Reservation.end_at <= now,
    )
    stmt = stmt.execution_options(populate_existing=True)
    candidates = (await session.execute(stmt)).scalars().all()
    outcome = SweepResult()
    for reservation in candidates:
        advanced = await _advance(
            session,
            reservation,
            expected=reservation.status,
            values={
                "status": ReservationStatus.COMPLETED,
                "completed_at": now,
                "review_deadline": review_deadline,
                "updated_at": now,
            },
        )
        if not advanced:
            outcome.skipped += 1
            continue
        outcome.processed += 1
        audit_service.add_event(
            session, event_type="reservation.completed", reservation_id=reservation.id
        )
        for recipient in (reservation.consumer_id, reservation.owner_id):
            outcome.intents.append(
                notify(
                    NotificationType.BOOKING_COMPLETED,
                    recipient,
                    reservation,
                    review_deadline=review_deadline.isoformat(),
                )
            )
    await session.commit()
    if outcome.processed:
        logger.info("Completed %s reservations", outcome.processed)
    return outcome


async def expire_unpaid_reservations(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Cancel pending reservations whose payment never succeeded in time."""
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    cutoff = now - timedelta(minutes=policy.unpaid_expiry_minutes)
    stmt = select(Reservation).where(
        Reservation.status == ReservationStatus.PENDING,
        Reservation.payment_status != PaymentStatus.SUCCEEDED,
        Reservation.created_at <= cutoff,
    )
    stmt = stmt.execution_options(populate_existing=True)
    candidates = (await session.execute(stmt)).scalars().all()
    outcome = SweepResult()
    for reservation in candidates:
        advanced = await _advance(
            session,
            reservation,
            expected=ReservationStatus.PENDING,
            values={
                "status": ReservationStatus.CANCELLED,
                "cancelled_at": now,
                "cancellation_reason": EXPIRY_REASON,
                "cancellation_initiated_by": CancellationInitiator.SYSTEM,
                "refund_rate": Decimal("0.00"),
                "refund_amount": Decimal("0.00"),
                "updated_at": now,
            },
        )
        if not advanced:
            outcome.skipped += 1
            continue
        outcome.processed += 1
        audit_service.add_event(
            session,
            event_type="reservation.expired",
            reservation_id=reservation.id,
            description=EXPIRY_REASON,
        )
        outcome.intents.append(
            notify(
                NotificationType.BOOKING_CANCELLED,
                reservation.consumer_id,
                reservation,
                initiated_by=CancellationInitiator.SYSTEM.value,
                reason=EXPIRY_REASON,
                refund_amount="0.00",
            )
        )
    await session.commit()
    if outcome.processed:
        logger.info("Expired %s unpaid reservations", outcome.processed)
    return outcome


async def run_progress_sweeps(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Run the start and completion sweeps against a single clock reading."""
    now = coerce_utc(now or utcnow())
    started = await start_due_reservations(session, now=now)
    completed = await complete_due_reservations(session, now=now, policy=policy)
    return SweepResult(
        processed=started.processed + completed.processed,
        skipped=started.skipped + completed.skipped,
        intents=started.intents + completed.intents,
    )


async def send_booking_reminders(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Remind both parties of confirmed reservations starting within the lead time."""
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    horizon = now + timedelta(hours=policy.reminder_lead_hours)
    stmt = select(Reservation).where(
        Reservation.status == ReservationStatus.CONFIRMED,
        Reservation.reminder_sent_at.is_(None),
        Reservation.start_at > now,
        Reservation.start_at <= horizon,
    )
    stmt = stmt.execution_options(populate_existing=True)
    candidates = (await session.execute(stmt)).scalars().all()
    outcome = SweepResult()
    for reservation in candidates:
        stamped = await _advance(
            session,
            reservation,
            expected=ReservationStatus.CONFIRMED,
            values={"reminder_sent_at": now, "updated_at": now},
            guards=(Reservation.reminder_sent_at.is_(None),),
        )
        if not stamped:
            outcome.skipped += 1
            continue
        outcome.processed += 1
        for recipient in (reservation.consumer_id, reservation.owner_id):
            outcome.intents.append(
                notify(NotificationType.BOOKING_REMINDER, recipient, reservation)
            )
    await session.commit()
    if outcome.processed:
        logger.info("Sent booking reminders for %s reservations", outcome.processed)
    return outcome


async def send_review_reminders(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Nudge each party of a completed reservation who has not reviewed it yet.

    A reservation is reminded about once, ``review_reminder_days`` after it
    completed and only while its review window is still open.
    """
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    completed_before = now - timedelta(days=policy.review_reminder_days)
    stmt = select(Reservation).where(
        Reservation.status == ReservationStatus.COMPLETED,
        Reservation.review_reminder_sent_at.is_(None),
        Reservation.completed_at <= completed_before,
        Reservation.review_deadline > now,
    )
    stmt = stmt.execution_options(populate_existing=True)
    candidates = (await session.execute(stmt)).scalars().all()
    outcome = SweepResult()
    for reservation in candidates:
        stamped = await _advance(
            session,
            reservation,
            expected=ReservationStatus.COMPLETED,
            values={"review_reminder_sent_at": now, "updated_at": now},
            guards=(Reservation.review_reminder_sent_at.is_(None),),
        )
        if not stamped:
            outcome.skipped += 1
            continue
        outcome.processed += 1
        reviewed = await session.execute(
            select(Review.reviewer_id).where(Review.reservation_id == reservation.id)
        )
        reviewers = set(reviewed.scalars().all())
        for recipient in (reservation.consumer_id, reservation.owner_id):
            if recipient in reviewers:
                continue
            outcome.intents.append(
                notify(
                    NotificationType.REVIEW_REMINDER,
                    recipient,
                    reservation,
                    review_deadline=coerce_utc(reservation.review_deadline).isoformat(),
                )
            )
    await session.commit()
    if outcome.intents:
        logger.info("Sent %s review reminders", len(outcome.intents))
    return outcome


async def run_reminder_sweeps(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> SweepResult:
    """Run the booking and review reminder sweeps against a single clock reading."""
    now = coerce_utc(now or utcnow())
    bookings = await send_booking_reminders(session, now=now, policy=policy)
    reviews = await send_review_reminders(session, now=now, policy=policy)
    return SweepResult(
        processed=bookings.processed + reviews.processed,
        skipped=bookings.skipped + reviews.skipped,
        intents=bookings.intents + reviews.intents,
    )

"""Reservation lifecycle: creation, confirmation, cancellation and payment events."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from booking_engine.core.clock import coerce_utc, utcnow
from booking_engine.core.config import BookingPolicy, get_booking_policy
from booking_engine.core.errors import (
    ConcurrencyError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from booking_engine.models import (
    CancellationInitiator,
    ConsumerProfile,
    Facility,
    NotificationType,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    Space,
)
from booking_engine.services import (
    audit_service,
    cancellation_policy,
    conflict_service,
    pricing_service,
    quota_service,
)
from booking_engine.services.intents import (
    ChargeIntent,
    Intent,
    RefundIntent,
    TransitionResult,
    notify,
)
from booking_engine.services.locking import KeyedLocks, consumer_locks, facility_locks

logger = logging.getLogger(__name__)

_ALLOWED_STATUS_TRANSITIONS: dict[ReservationStatus, set[ReservationStatus]] = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {
        ReservationStatus.IN_PROGRESS,
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.IN_PROGRESS: {ReservationStatus.COMPLETED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}

_CANCELLABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


def can_transition(current: ReservationStatus, new: ReservationStatus) -> bool:
    return new in _ALLOWED_STATUS_TRANSITIONS.get(current, set())


def _validate_window(
    start_at: datetime, end_at: datetime, now: datetime, policy: BookingPolicy
) -> Decimal:
    if start_at < now + timedelta(hours=policy.min_advance_hours):
        raise ValidationError(
            f"Reservations must be made at least {policy.min_advance_hours} hours in advance"
        )
    if start_at > now + timedelta(days=policy.max_advance_days):
        raise ValidationError(
            f"Reservations cannot be made more than {policy.max_advance_days} days in advance"
        )
    if end_at <= start_at:
        raise ValidationError("Reservation end time must be after start time")
    hours = pricing_service.duration_hours(start_at, end_at)
    if hours < policy.min_duration_hours or hours > policy.max_duration_hours:
        raise ValidationError(
            "Reservation duration must be between "
            f"{policy.min_duration_hours} and {policy.max_duration_hours} hours"
        )
    return hours


async def _lock_facility(session: AsyncSession, facility_id: uuid.UUID) -> Facility:
    stmt = select(Facility).where(Facility.id == facility_id).with_for_update()
    facility = (await session.execute(stmt)).scalar_one_or_none()
    if facility is None:
        raise NotFoundError("Facility not found")
    if not facility.is_active:
        raise PreconditionError("Facility is not accepting reservations")
    return facility


async def _ensure_consumer_profile(session: AsyncSession, consumer_id: str) -> None:
    """Persist the consumer's profile row so creation has something to lock."""
    if await session.get(ConsumerProfile, consumer_id) is not None:
        return
    session.add(ConsumerProfile(id=consumer_id))
    try:
        await session.commit()
    except IntegrityError:
        # Another process inserted it first.
        await session.rollback()


async def _lock_consumer(session: AsyncSession, consumer_id: str) -> None:
    stmt = (
        select(ConsumerProfile.id)
        .where(ConsumerProfile.id == consumer_id)
        .with_for_update()
    )
    await session.execute(stmt)


async def _validate_space(
    session: AsyncSession, *, facility: Facility, space_id: uuid.UUID | None
) -> None:
    if space_id is None:
        return
    space = await session.get(Space, space_id)
    if space is None or space.facility_id != facility.id:
        raise NotFoundError("Space not found for this facility")
    if not space.is_active:
        raise PreconditionError("Space is not accepting reservations")


async def _create_once(
    session: AsyncSession,
    *,
    consumer_id: str,
    facility_id: uuid.UUID,
    space_id: uuid.UUID | None,
    start_at: datetime,
    end_at: datetime,
    hours: Decimal,
    notes: str | None,
    now: datetime,
    policy: BookingPolicy,
) -> Reservation:
    try:
        await _lock_consumer(session, consumer_id)
        facility = await _lock_facility(session, facility_id)
        await _validate_space(session, facility=facility, space_id=space_id)
        await quota_service.ensure_pending_quota(
            session, consumer_id=consumer_id, policy=policy
        )
        await quota_service.ensure_daily_quota(
            session, consumer_id=consumer_id, start_at=start_at, policy=policy
        )
        await quota_service.ensure_concurrent_quota(
            session,
            consumer_id=consumer_id,
            start_at=start_at,
            end_at=end_at,
            policy=policy,
        )
        await conflict_service.ensure_slot_available(
            session, facility_id=facility.id, start_at=start_at, end_at=end_at
        )
        quote = pricing_service.price(facility.hourly_rate, hours, policy.commission_rate)
        pricing_service.check_bounds(
            quote, min_price=policy.min_price, max_price=policy.max_price
        )

        reservation = Reservation(
            consumer_id=consumer_id,
            owner_id=facility.owner_id,
            facility_id=facility.id,
            space_id=space_id,
            start_at=start_at,
            end_at=end_at,
            duration_hours=quote.duration_hours,
            hourly_rate=quote.hourly_rate,
            subtotal=quote.subtotal,
            commission_rate=quote.commission_rate,
            commission_amount=quote.commission,
            total_price=quote.total,
            currency=policy.currency,
            status=ReservationStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        session.add(reservation)
        await session.flush()
        audit_service.add_event(
            session,
            event_type="reservation.created",
            actor_id=consumer_id,
            reservation_id=reservation.id,
            payload=quote.to_dict(),
        )
        await session.commit()
    except OperationalError as exc:
        await session.rollback()
        raise ConcurrencyError("Reservation could not be saved, please retry") from exc
    return reservation


async def create_reservation(
    session: AsyncSession,
    *,
    consumer_id: str,
    facility_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    space_id: uuid.UUID | None = None,
    notes: str | None = None,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
    locks: KeyedLocks | None = None,
    consumer_lock_registry: KeyedLocks | None = None,
) -> TransitionResult:
    """Create a pending reservation after every admission check passes.

    Checks run in a fixed order so that callers always see the same error
    for the same input: booking window, duration, facility and space,
    pending quota, daily quota, overlapping quota, slot conflict and finally
    the price bounds. The whole check-then-insert runs while holding the
    consumer lock and then the facility lock, both in process and on their
    rows, so two requests for the same slot cannot both succeed and two
    requests from one consumer cannot both pass a quota.

    A rejected request leaves the session's transaction open for its owner
    to end.
    """
    policy = policy or get_booking_policy()
    locks = locks or facility_locks
    consumer_lock_registry = consumer_lock_registry or consumer_locks
    now = coerce_utc(now or utcnow())
    start_at = coerce_utc(start_at)
    end_at = coerce_utc(end_at)

    hours = _validate_window(start_at, end_at, now, policy)

    attempts = max(1, policy.create_max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            async with (
                consumer_lock_registry.hold(consumer_id),
                locks.hold(facility_id),
            ):
                await _ensure_consumer_profile(session, consumer_id)
                reservation = await _create_once(
                    session,
                    consumer_id=consumer_id,
                    facility_id=facility_id,
                    space_id=space_id,
                    start_at=start_at,
                    end_at=end_at,
                    hours=hours,
                    notes=notes,
                    now=now,
                    policy=policy,
                )
            break
        except ConcurrencyError:
            if attempt == attempts:
                raise
            logger.warning(
                "Retrying reservation for facility %s (attempt %s of %s)",
                facility_id,
                attempt + 1,
                attempts,
            )

    logger.info(
        "Reservation %s created for facility %s (%s)",
        reservation.id,
        reservation.facility_id,
        reservation.total_price,
    )
    intents: list[Intent] = [
        notify(
            NotificationType.BOOKING_CREATED,
            reservation.owner_id,
            reservation,
            consumer_id=reservation.consumer_id,
            total_price=str(reservation.total_price),
        ),
        ChargeIntent(
            reservation_id=reservation.id,
            amount=reservation.total_price,
            currency=reservation.currency,
            metadata={
                "reservation_id": str(reservation.id),
                "consumer_id": reservation.consumer_id,
                "owner_id": reservation.owner_id,
                "commission_amount": str(reservation.commission_amount),
            },
        ),
    ]
    return TransitionResult(reservation=reservation, intents=intents)


async def _load_for_update(session: AsyncSession, reservation_id: uuid.UUID) -> Reservation:
    stmt = (
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    reservation = (await session.execute(stmt)).scalar_one_or_none()
    if reservation is None:
        raise NotFoundError("Reservation not found")
    return reservation


async def _compare_and_set(
    session: AsyncSession,
    reservation: Reservation,
    *,
    expected: Iterable[ReservationStatus],
    values: dict[str, Any],
) -> None:
    """Apply ``values`` only if the stored status is still one of ``expected``.

    On a lost race the transaction is rolled back to release the row and
    ``reservation`` is reloaded with the state that won.
    """
    stmt = (
        update(Reservation)
        .where(Reservation.id == reservation.id, Reservation.status.in_(list(expected)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        await session.rollback()
        await session.refresh(reservation)
        raise PreconditionError("Reservation changed concurrently, reload and retry")
    for key, value in values.items():
        set_committed_value(reservation, key, value)


async def _bump_facility_bookings(session: AsyncSession, facility_id: uuid.UUID) -> None:
    await session.execute(
        update(Facility)
        .where(Facility.id == facility_id)
        .values(total_bookings=Facility.total_bookings + 1)
        .execution_options(synchronize_session=False)
    )


async def confirm_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    actor_id: str,
    now: datetime | None = None,
) -> TransitionResult:
    """Owner confirmation of a paid, pending reservation."""
    now = coerce_utc(now or utcnow())
    reservation = await _load_for_update(session, reservation_id)
    if actor_id != reservation.owner_id:
        raise PermissionDeniedError("Only the facility owner can confirm this reservation")
    if reservation.status != ReservationStatus.PENDING:
        raise PreconditionError("This reservation cannot be confirmed")
    if reservation.payment_status != PaymentStatus.SUCCEEDED:
        raise PreconditionError("Payment has not been completed")

    await _compare_and_set(
        session,
        reservation,
        expected=[ReservationStatus.PENDING],
        values={
            "status": ReservationStatus.CONFIRMED,
            "confirmed_at": now,
            "updated_at": now,
        },
    )
    await _bump_facility_bookings(session, reservation.facility_id)
    audit_service.add_event(
        session,
        event_type="reservation.confirmed",
        actor_id=actor_id,
        reservation_id=reservation.id,
    )
    await session.commit()
    logger.info("Reservation %s confirmed by owner", reservation.id)
    return TransitionResult(
        reservation=reservation,
        intents=[
            notify(NotificationType.BOOKING_CONFIRMED, reservation.consumer_id, reservation)
        ],
    )


async def cancel_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    actor_id: str,
    reason: str | None = None,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> TransitionResult:
    """Cancel on behalf of the consumer or owner and compute the refund."""
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    reservation = await _load_for_update(session, reservation_id)

    if actor_id == reservation.consumer_id:
        initiator = CancellationInitiator.CONSUMER
    elif actor_id == reservation.owner_id:
        initiator = CancellationInitiator.OWNER
    else:
        raise PermissionDeniedError("You are not a party to this reservation")
    if reservation.status not in _CANCELLABLE_STATUSES:
        raise PreconditionError("This reservation cannot be cancelled")

    decision = cancellation_policy.refund_for(
        start_at=coerce_utc(reservation.start_at),
        cancelled_at=now,
        total=reservation.total_price,
        policy=policy,
    )
    await _compare_and_set(
        session,
        reservation,
        expected=_CANCELLABLE_STATUSES,
        values={
            "status": ReservationStatus.CANCELLED,
            "cancelled_at": now,
            "cancellation_reason": reason,
            "cancellation_initiated_by": initiator,
            "refund_rate": decision.rate,
            "refund_amount": decision.amount,
            "updated_at": now,
        },
    )
    audit_service.add_event(
        session,
        event_type="reservation.cancelled",
        actor_id=actor_id,
        reservation_id=reservation.id,
        description=reason,
        payload={
            "initiated_by": initiator.value,
            "refund_rate": str(decision.rate),
            "refund_amount": str(decision.amount),
        },
    )
    await session.commit()
    logger.info(
        "Reservation %s cancelled by %s, refund %s",
        reservation.id,
        initiator.value,
        decision.amount,
    )

    recipient = (
        reservation.owner_id
        if initiator == CancellationInitiator.CONSUMER
        else reservation.consumer_id
    )
    intents: list[Intent] = [
        notify(
            NotificationType.BOOKING_CANCELLED,
            recipient,
            reservation,
            initiated_by=initiator.value,
            reason=reason,
            refund_amount=str(decision.amount),
        )
    ]
    if reservation.payment_status == PaymentStatus.SUCCEEDED and decision.amount > 0:
        intents.append(
            RefundIntent(
                reservation_id=reservation.id,
                amount=decision.amount,
                original_amount=reservation.total_price,
                payment_reference=reservation.payment_reference,
                initiated_by=initiator.value,
                reason=reason,
            )
        )
    return TransitionResult(reservation=reservation, intents=intents)


async def record_payment_succeeded(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    payment_reference: str | None = None,
    now: datetime | None = None,
    policy: BookingPolicy | None = None,
) -> TransitionResult:
    """Apply a successful charge; auto-confirms when the policy says so.

    Replaying the event for an already paid reservation is a no-op.
    """
    policy = policy or get_booking_policy()
    now = coerce_utc(now or utcnow())
    reservation = await _load_for_update(session, reservation_id)

    if reservation.payment_status == PaymentStatus.SUCCEEDED:
        await session.commit()
        return TransitionResult(reservation=reservation)
    if reservation.status != ReservationStatus.PENDING:
        raise PreconditionError("Payment received for a reservation that is no longer pending")

    values: dict[str, Any] = {
        "payment_status": PaymentStatus.SUCCEEDED,
        "payment_reference": payment_reference,
        "payment_failure_reason": None,
        "updated_at": now,
    }
    if policy.auto_confirm_on_payment:
        values["status"] = ReservationStatus.CONFIRMED
        values["confirmed_at"] = now
    await _compare_and_set(
        session, reservation, expected=[ReservationStatus.PENDING], values=values
    )
    if policy.auto_confirm_on_payment:
        await _bump_facility_bookings(session, reservation.facility_id)
    audit_service.add_event(
        session,
        event_type="reservation.payment_succeeded",
        reservation_id=reservation.id,
        payload={"auto_confirmed": policy.auto_confirm_on_payment},
    )
    await session.commit()
    logger.info("Payment recorded for reservation %s", reservation.id)

    intents: list[Intent] = [
        notify(
            NotificationType.PAYMENT_RECEIVED,
            reservation.owner_id,
            reservation,
            amount=str(reservation.subtotal),
        )
    ]
    if policy.auto_confirm_on_payment:
        intents.append(
            notify(NotificationType.BOOKING_CONFIRMED, reservation.consumer_id, reservation)
        )
    return TransitionResult(reservation=reservation, intents=intents)


async def record_payment_failed(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    payment_reference: str | None = None,
    reason: str | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """Mark the charge as failed; the reservation stays pending until it expires."""
    now = coerce_utc(now or utcnow())
    reservation = await _load_for_update(session, reservation_id)
    if reservation.status != ReservationStatus.PENDING:
        raise PreconditionError("Payment failure for a reservation that is no longer pending")
    if reservation.payment_status == PaymentStatus.SUCCEEDED:
        raise PreconditionError("Payment has already been completed")

    await _compare_and_set(
        session,
        reservation,
        expected=[ReservationStatus.PENDING],
        values={
            "payment_status": PaymentStatus.FAILED,
            "payment_reference": payment_reference or reservation.payment_reference,
            "payment_failure_reason": reason or "Payment failed",
            "updated_at": now,
        },
    )
    audit_service.add_event(
        session,
        event_type="reservation.payment_failed",
        reservation_id=reservation.id,
        description=reason,
    )
    await session.commit()
    logger.info("Payment failed for reservation %s", reservation.id)
    return TransitionResult(
        reservation=reservation,
        intents=[
            notify(
                NotificationType.PAYMENT_FAILED,
                reservation.consumer_id,
                reservation,
                reason=reason or "Payment failed",
            )
        ],
    )


async def record_refund_completed(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    now: datetime | None = None,
) -> TransitionResult:
    """Mark the payment of a cancelled reservation as refunded."""
    now = coerce_utc(now or utcnow())
    reservation = await _load_for_update(session, reservation_id)
    if reservation.payment_status == PaymentStatus.REFUNDED:
        await session.commit()
        return TransitionResult(reservation=reservation)
    if (
        reservation.status != ReservationStatus.CANCELLED
        or reservation.payment_status != PaymentStatus.SUCCEEDED
    ):
        raise PreconditionError("Only paid, cancelled reservations can be refunded")

    await _compare_and_set(
        session,
        reservation,
        expected=[ReservationStatus.CANCELLED],
        values={"payment_status": PaymentStatus.REFUNDED, "updated_at": now},
    )
    audit_service.add_event(
        session,
        event_type="reservation.refunded",
        reservation_id=reservation.id,
        payload={"refund_amount": str(reservation.refund_amount)},
    )
    await session.commit()
    return TransitionResult(reservation=reservation)


async def get_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    actor_id: str | None = None,
) -> Reservation:
    reservation = await session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    if actor_id is not None and actor_id not in (
        reservation.consumer_id,
        reservation.owner_id,
    ):
        raise PermissionDeniedError("You are not a party to this reservation")
    return reservation


async def list_reservations(
    session: AsyncSession,
    *,
    actor_id: str,
    role: str | None = None,
    status: ReservationStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Reservation]:
    """List reservations where the actor is consumer, owner, or either."""
    if role == "consumer":
        stmt = select(Reservation).where(Reservation.consumer_id == actor_id)
    elif role == "owner":
        stmt = select(Reservation).where(Reservation.owner_id == actor_id)
    else:
        stmt = select(Reservation).where(
            (Reservation.consumer_id == actor_id) | (Reservation.owner_id == actor_id)
        )
    if status is not None:
        stmt = stmt.where(Reservation.status == status)
    stmt = stmt.order_by(Reservation.start_at.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()

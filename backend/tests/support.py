"""Shared helpers for the booking engine tests."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import BookingPolicy
from booking_engine.models import Facility, Reservation
from booking_engine.services import reservation_service, sweep_service
from booking_engine.services.intents import TransitionResult

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
OWNER_ID = "owner-1"
CONSUMER_ID = "consumer-1"
OTHER_CONSUMER_ID = "consumer-2"


def slot(days: float = 3, *, hours: float = 2, hour: int = 10) -> tuple[datetime, datetime]:
    """Return a ``hours`` long interval starting ``days`` after NOW's day at ``hour``."""
    day = NOW.replace(hour=hour, minute=0) + timedelta(days=days)
    return day, day + timedelta(hours=hours)


async def book(
    session: AsyncSession,
    facility: Facility,
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    consumer_id: str = CONSUMER_ID,
    now: datetime = NOW,
    policy: BookingPolicy | None = None,
) -> TransitionResult:
    if start_at is None or end_at is None:
        start_at, end_at = slot()
    return await reservation_service.create_reservation(
        session,
        consumer_id=consumer_id,
        facility_id=facility.id,
        start_at=start_at,
        end_at=end_at,
        now=now,
        policy=policy or BookingPolicy(),
    )


async def reload(session: AsyncSession, reservation_id: uuid.UUID) -> Reservation:
    stmt = (
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one()


async def completed(
    session: AsyncSession,
    facility: Facility,
    *,
    days: float = 3,
    consumer_id: str = CONSUMER_ID,
) -> Reservation:
    """Book, pay for and complete a reservation ``days`` after NOW."""
    start_at, end_at = slot(days)
    created = await book(
        session, facility, start_at=start_at, end_at=end_at, consumer_id=consumer_id
    )
    await reservation_service.record_payment_succeeded(
        session, reservation_id=created.reservation.id, payment_reference="pi_done", now=NOW
    )
    await sweep_service.complete_due_reservations(
        session, now=end_at, policy=BookingPolicy()
    )
    return await reload(session, created.reservation.id)


def comment(text: str = "Great venue") -> str:
    """Pad ``text`` to a comment long enough to pass validation."""
    return f"{text}, everything went smoothly from start to finish."

"""Per-consumer booking quotas.

Every check is a fresh query run inside the caller's transaction, so the
limits stay correct across processes without shared counters.
"""

from __future__ import annotations

from datetime import datetime, time
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.clock import coerce_utc
from booking_engine.core.config import BookingPolicy
from booking_engine.core.errors import ConflictError
from booking_engine.models import ACTIVE_STATUSES, Reservation, ReservationStatus

DAILY_QUOTA_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


def day_bounds(moment: datetime, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Return the inclusive first and last instant of ``moment``'s calendar day."""
    zone = ZoneInfo(tz_name)
    local_day = coerce_utc(moment).astimezone(zone).date()
    day_start = datetime.combine(local_day, time.min, tzinfo=zone)
    day_end = datetime.combine(local_day, time.max, tzinfo=zone)
    return coerce_utc(day_start), coerce_utc(day_end)


async def count_pending(session: AsyncSession, *, consumer_id: str) -> int:
    stmt = select(func.count()).select_from(Reservation).where(
        Reservation.consumer_id == consumer_id,
        Reservation.status == ReservationStatus.PENDING,
    )
    return (await session.execute(stmt)).scalar_one()


async def count_same_day(
    session: AsyncSession,
    *,
    consumer_id: str,
    start_at: datetime,
    tz_name: str = "UTC",
) -> int:
    day_start, day_end = day_bounds(start_at, tz_name)
    stmt = select(func.count()).select_from(Reservation).where(
        Reservation.consumer_id == consumer_id,
        Reservation.status.in_(DAILY_QUOTA_STATUSES),
        Reservation.start_at >= day_start,
        Reservation.start_at <= day_end,
    )
    return (await session.execute(stmt)).scalar_one()


async def count_overlapping(
    session: AsyncSession,
    *,
    consumer_id: str,
    start_at: datetime,
    end_at: datetime,
) -> int:
    stmt = select(func.count()).select_from(Reservation).where(
        Reservation.consumer_id == consumer_id,
        Reservation.status.in_(ACTIVE_STATUSES),
        Reservation.end_at > start_at,
        Reservation.start_at < end_at,
    )
    return (await session.execute(stmt)).scalar_one()


async def ensure_pending_quota(
    session: AsyncSession, *, consumer_id: str, policy: BookingPolicy
) -> None:
    pending = await count_pending(session, consumer_id=consumer_id)
    if pending >= policy.max_pending:
        raise ConflictError("Too many reservations awaiting payment")


async def ensure_daily_quota(
    session: AsyncSession,
    *,
    consumer_id: str,
    start_at: datetime,
    policy: BookingPolicy,
) -> None:
    same_day = await count_same_day(
        session,
        consumer_id=consumer_id,
        start_at=start_at,
        tz_name=policy.quota_timezone,
    )
    if same_day >= policy.max_per_day:
        raise ConflictError(
            f"Cannot hold more than {policy.max_per_day} reservations per day"
        )


async def ensure_concurrent_quota(
    session: AsyncSession,
    *,
    consumer_id: str,
    start_at: datetime,
    end_at: datetime,
    policy: BookingPolicy,
) -> None:
    if policy.max_concurrent is None:
        return
    overlapping = await count_overlapping(
        session, consumer_id=consumer_id, start_at=start_at, end_at=end_at
    )
    if overlapping >= policy.max_concurrent:
        raise ConflictError(
            f"Cannot hold more than {policy.max_concurrent} overlapping reservations"
        )


__all__ = [
    "DAILY_QUOTA_STATUSES",
    "count_overlapping",
    "count_pending",
    "count_same_day",
    "day_bounds",
    "ensure_concurrent_quota",
    "ensure_daily_quota",
    "ensure_pending_quota",
]

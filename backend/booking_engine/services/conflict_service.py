"""Overlap detection against a facility's active reservations."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.errors import ConflictError
from booking_engine.models import ACTIVE_STATUSES, Reservation


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return a_end > b_start and a_start < b_end


async def find_conflicts(
    session: AsyncSession,
    *,
    facility_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    exclude_reservation_id: uuid.UUID | None = None,
) -> Sequence[Reservation]:
    """Return active reservations of the facility overlapping ``[start_at, end_at)``."""
    stmt = select(Reservation).where(
        Reservation.facility_id == facility_id,
        Reservation.status.in_(ACTIVE_STATUSES),
        Reservation.end_at > start_at,
        Reservation.start_at < end_at,
    )
    if exclude_reservation_id is not None:
        stmt = stmt.where(Reservation.id != exclude_reservation_id)
    result = await session.execute(stmt)
    return result.scalars().all()


async def ensure_slot_available(
    session: AsyncSession,
    *,
    facility_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    exclude_reservation_id: uuid.UUID | None = None,
) -> None:
    conflicts = await find_conflicts(
        session,
        facility_id=facility_id,
        start_at=start_at,
        end_at=end_at,
        exclude_reservation_id=exclude_reservation_id,
    )
    if conflicts:
        raise ConflictError("This time slot is already booked")

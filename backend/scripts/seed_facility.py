"""Seed a demo facility for local development."""
from __future__ import annotations

import asyncio
from decimal import Decimal

from sqlalchemy import select

from booking_engine.db.session import get_sessionmaker
from booking_engine.models import Facility, OwnerProfile, Space

OWNER_ID = "dev-owner"
FACILITY_NAME = "Riverside Sports Hall"
HOURLY_RATE = Decimal("40.00")
SPACES = ("Court A", "Court B")


async def seed_facility() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        existing = await session.execute(
            select(Facility).where(
                Facility.owner_id == OWNER_ID, Facility.name == FACILITY_NAME
            )
        )
        facility = existing.scalar_one_or_none()
        if facility is not None:
            print(f"Facility {facility.id} already exists")
            return

        if await session.get(OwnerProfile, OWNER_ID) is None:
            session.add(OwnerProfile(id=OWNER_ID, display_name="Dev Owner"))
        facility = Facility(owner_id=OWNER_ID, name=FACILITY_NAME, hourly_rate=HOURLY_RATE)
        facility.spaces = [Space(name=name) for name in SPACES]
        session.add(facility)
        await session.commit()
        print(f"Seeded facility {facility.id} owned by {OWNER_ID}")


def main() -> None:
    asyncio.run(seed_facility())


if __name__ == "__main__":
    main()

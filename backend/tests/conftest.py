"""Test fixtures for the booking engine."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Awaitable, Callable
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from booking_engine.core.config import BookingPolicy, get_settings
from booking_engine.db.base import Base
from booking_engine.db.session import dispose_engine, get_sessionmaker
from booking_engine.main import app
from booking_engine.models import Facility, Space

from support import CONSUMER_ID, OWNER_ID

FacilityFactory = Callable[..., Awaitable[Facility]]


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def sessionmaker(reset_database: None, db_url: str) -> async_sessionmaker[AsyncSession]:
    return get_sessionmaker(db_url)


@pytest_asyncio.fixture()
async def session(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as session:
        yield session


@pytest.fixture()
def policy() -> BookingPolicy:
    return BookingPolicy()


@pytest.fixture()
def make_facility(sessionmaker: async_sessionmaker[AsyncSession]) -> FacilityFactory:
    """Return a coroutine that persists a facility and returns it."""

    async def _make(
        *,
        owner_id: str = OWNER_ID,
        hourly_rate: Decimal | str = Decimal("50.00"),
        is_active: bool = True,
        spaces: tuple[str, ...] = (),
        name: str = "Riverside Hall",
    ) -> Facility:
        async with sessionmaker() as session:
            facility = Facility(
                owner_id=owner_id,
                name=name,
                hourly_rate=Decimal(hourly_rate),
                is_active=is_active,
            )
            facility.spaces = [Space(name=space_name) for space_name in spaces]
            session.add(facility)
            await session.commit()
            return facility

    return _make


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None, db_url: str, make_facility: FacilityFactory
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client and a seeded facility."""
    facility = await make_facility(spaces=("Court A",))
    context: dict[str, object] = {
        "facility_id": facility.id,
        "space_id": facility.spaces[0].id,
        "owner_id": OWNER_ID,
        "consumer_id": CONSUMER_ID,
    }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context

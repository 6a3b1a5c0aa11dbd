"""Engine and session factories, cached per database URL."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from booking_engine.core.config import get_settings

# Seconds a SQLite writer waits for the file lock before raising
# OperationalError, which reservation creation turns into a retry.
SQLITE_BUSY_TIMEOUT = 15

_engines: dict[str, AsyncEngine] = {}
_factories: dict[str, async_sessionmaker[AsyncSession]] = {}


def _database_url(override: str | None = None) -> str:
    return override or get_settings().database_url


def _engine_options(url: str) -> dict[str, Any]:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT}}
    return {"pool_pre_ping": True}


def get_engine(database_url: str | None = None) -> AsyncEngine:
    url = _database_url(database_url)
    engine = _engines.get(url)
    if engine is None:
        engine = create_async_engine(url, echo=False, **_engine_options(url))
        _engines[url] = engine
    return engine


def get_sessionmaker(
    database_url: str | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Return the session factory for ``database_url`` (default: configured URL).

    Sessions keep loaded attributes after commit, so transition results
    can be serialized once the service has committed.
    """
    url = _database_url(database_url)
    factory = _factories.get(url)
    if factory is None:
        factory = async_sessionmaker(
            get_engine(url), expire_on_commit=False, class_=AsyncSession
        )
        _factories[url] = factory
    return factory


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session


async def dispose_engine(database_url: str | None = None) -> None:
    """Close the pooled connections for ``database_url`` and forget its factory."""
    url = _database_url(database_url)
    _factories.pop(url, None)
    engine = _engines.pop(url, None)
    if engine is not None:
        await engine.dispose()

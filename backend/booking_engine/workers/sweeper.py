"""Background loop that drives the lifecycle sweeps on their own cadences."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_engine.core.config import Settings, get_booking_policy, get_settings
from booking_engine.db.session import get_sessionmaker
from booking_engine.services import dispatch_service, sweep_service

logger = logging.getLogger(__name__)


async def run_progress_sweep(
    session_factory: async_sessionmaker[AsyncSession],
) -> sweep_service.SweepResult:
    policy = get_booking_policy()
    async with session_factory() as session:
        result = await sweep_service.run_progress_sweeps(session, policy=policy)
    await dispatch_service.dispatch_intents(
        result.intents, session_factory=session_factory, policy=policy
    )
    return result


async def run_expiry_sweep(
    session_factory: async_sessionmaker[AsyncSession],
) -> sweep_service.SweepResult:
    policy = get_booking_policy()
    async with session_factory() as session:
        result = await sweep_service.expire_unpaid_reservations(session, policy=policy)
    await dispatch_service.dispatch_intents(
        result.intents, session_factory=session_factory, policy=policy
    )
    return result


async def run_reminder_sweep(
    session_factory: async_sessionmaker[AsyncSession],
) -> sweep_service.SweepResult:
    policy = get_booking_policy()
    async with session_factory() as session:
        result = await sweep_service.run_reminder_sweeps(session, policy=policy)
    await dispatch_service.dispatch_intents(
        result.intents, session_factory=session_factory, policy=policy
    )
    return result


async def run_sweeps(
    stop_event: asyncio.Event,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    settings: Settings | None = None,
) -> None:
    settings = settings or get_settings()
    factory = session_factory or get_sessionmaker()
    loop = asyncio.get_running_loop()
    next_progress = next_expiry = next_reminder = loop.time()

    while not stop_event.is_set():
        now = loop.time()
        if now >= next_progress:
            try:
                await run_progress_sweep(factory)
            except Exception:  # noqa: BLE001
                logger.exception("Progress sweep failed")
            next_progress = now + settings.progress_sweep_seconds
        if now >= next_expiry:
            try:
                await run_expiry_sweep(factory)
            except Exception:  # noqa: BLE001
                logger.exception("Expiry sweep failed")
            next_expiry = now + settings.expiry_sweep_seconds
        if now >= next_reminder:
            try:
                await run_reminder_sweep(factory)
            except Exception:  # noqa: BLE001
                logger.exception("Reminder sweep failed")
            next_reminder = now + settings.reminder_sweep_seconds

        timeout = max(min(next_progress, next_expiry, next_reminder) - loop.time(), 0.1)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            continue

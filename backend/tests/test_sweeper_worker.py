"""Tests for the background sweep loop."""

from __future__ import annotations

import asyncio
import logging

import pytest

from booking_engine.core.config import get_settings
from booking_engine.workers import sweeper

pytestmark = pytest.mark.asyncio


async def test_loop_survives_failures_and_stops(monkeypatch, caplog) -> None:
    stop_event = asyncio.Event()
    calls: list[str] = []

    async def failing_progress(factory):
        calls.append("progress")
        raise RuntimeError("database unavailable")

    async def expiry(factory):
        calls.append("expiry")

    async def reminders(factory):
        calls.append("reminders")
        stop_event.set()

    monkeypatch.setattr(sweeper, "run_progress_sweep", failing_progress)
    monkeypatch.setattr(sweeper, "run_expiry_sweep", expiry)
    monkeypatch.setattr(sweeper, "run_reminder_sweep", reminders)

    with caplog.at_level(logging.ERROR, logger="booking_engine.workers.sweeper"):
        await asyncio.wait_for(
            sweeper.run_sweeps(stop_event, session_factory=object(), settings=get_settings()),
            timeout=5,
        )

    assert calls == ["progress", "expiry", "reminders"]
    assert "Progress sweep failed" in caplog.text


async def test_sweeps_run_against_database(sessionmaker) -> None:
    progress = await sweeper.run_progress_sweep(sessionmaker)
    expiry = await sweeper.run_expiry_sweep(sessionmaker)
    reminders = await sweeper.run_reminder_sweep(sessionmaker)

    assert progress.processed == 0
    assert expiry.processed == 0
    assert reminders.processed == 0

"""Run the lifecycle sweeps until interrupted."""
from __future__ import annotations

import asyncio
import logging
import signal

from booking_engine.db.session import dispose_engine
from booking_engine.security.logging_filters import SensitiveFilter
from booking_engine.workers.sweeper import run_sweeps


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logging.getLogger().addFilter(SensitiveFilter())

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    try:
        await run_sweeps(stop_event)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())

"""Redis-backed request throttling shared by the routers."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from booking_engine.core.config import Settings, get_settings

_SECONDS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """Parse limits such as ``10/hour`` into ``(times, seconds)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    seconds = _SECONDS.get(window_str.strip().lower(), fallback[1])
    return count, seconds


def rate_dependency(setting: Callable[[Settings], str], *, fallback: tuple[int, int]):
    """Throttle a route with the limit named by ``setting``; no-op without Redis."""

    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        times, seconds = parse_rate(setting(get_settings()), fallback=fallback)
        limiter = RateLimiter(times=times, seconds=seconds)
        await limiter(request, response)

    return Depends(_dependency)


BOOKING_RATE_DEP = rate_dependency(lambda s: s.rate_limit_bookings, fallback=(10, 3600))
DEFAULT_RATE_DEP = rate_dependency(lambda s: s.rate_limit_default, fallback=(100, 60))

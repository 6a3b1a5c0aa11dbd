"""In-process mutual exclusion for reservation creation."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLocks:
    """Registry of asyncio locks keyed by facility or consumer id.

    Only work on the same key serializes; locks for idle keys are dropped
    once nothing holds a reference to them.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[Hashable, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self.lock_for(key)
        async with lock:
            yield


facility_locks = KeyedLocks()
consumer_locks = KeyedLocks()

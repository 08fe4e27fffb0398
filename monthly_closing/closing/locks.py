"""
Per-Period Locks

Serializes close/reopen of the same (user, year, month) inside one process.
Different periods and different users never wait on each other.

Across processes the closure version check in the storage layer is what
prevents lost updates; this lock only keeps one process from racing itself.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


PeriodKey = tuple[str, int, int]


class PeriodLocks:
    """Application-level mutex keyed by (user_id, year, month)."""

    def __init__(self):
        self._locks: dict[PeriodKey, asyncio.Lock] = {}
        self._holders: dict[PeriodKey, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: str, year: int, month: int) -> AsyncIterator[None]:
        key = (user_id, year, month)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                # Nobody waiting: drop the lock so the dict doesn't grow forever
                del self._holders[key]
                del self._locks[key]

    def active_keys(self) -> list[PeriodKey]:
        return list(self._locks)

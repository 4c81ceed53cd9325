"""Per-record mutual exclusion for genbatch.

The record store has no compare-and-swap, so every read-modify-write on a
batch record runs under the lock for that record id. Locks are per process.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class RecordLocks:
    """Registry of asyncio locks keyed by record id.

    Entries are dropped once no coroutine holds or waits on them, so the
    registry only grows with the number of records being mutated right now.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, record_id: str) -> AsyncIterator[None]:
        """Hold the lock for one record for the duration of the block."""
        lock = self._locks.get(record_id)
        if lock is None:
            lock = self._locks[record_id] = asyncio.Lock()
        self._users[record_id] = self._users.get(record_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[record_id] -= 1
            if self._users[record_id] == 0:
                del self._users[record_id]
                del self._locks[record_id]

    def active(self) -> int:
        """Number of records currently locked or awaited."""
        return len(self._locks)

"""Per-record async locks for pipeline transitions.

Concurrent transitions on the same candidate or interview run one at a
time inside this process. Across processes the row lock
(SELECT ... FOR UPDATE) and the version column take over.

Note: Locks live in process memory. They are safe for async/await usage
(single event loop) but not for multi-threaded access.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

_Key = tuple[str, uuid.UUID]


class RecordLockRegistry:
    """Hands out one asyncio.Lock per (kind, record id) key.

    An entry exists only while some task holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[_Key, asyncio.Lock] = {}
        self._users: dict[_Key, int] = {}

    def _acquire_entry(self, key: _Key) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _release_entry(self, key: _Key) -> None:
        remaining = self._users.get(key, 0) - 1
        if remaining > 0:
            self._users[key] = remaining
            return
        self._users.pop(key, None)
        self._locks.pop(key, None)

    @asynccontextmanager
    async def hold(self, kind: str, record_id: uuid.UUID) -> AsyncIterator[None]:
        """Hold the lock for one record for the duration of the block.

        Args:
            kind: Record type ("candidate", "mock_interview", ...).
            record_id: Primary key of the record.
        """
        key = (kind, record_id)
        lock = self._acquire_entry(key)
        try:
            async with lock:
                yield
        finally:
            self._release_entry(key)

    def __len__(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        """Forget every lock. For testing only."""
        self._locks.clear()
        self._users.clear()


# Global registry instance
record_locks = RecordLockRegistry()

"""Per-user mutation locks.

All balance and assignment mutations for one user run one at a time inside
this process. The lock is re-entrant for the task that holds it, so the
unlock saga can hold it while calling back into the ledger.

Cross-process safety comes from the store: compare-and-swap balance updates
and unique constraints.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class _UserLock:
    __slots__ = ("__weakref__", "_lock", "_owner", "_depth")

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None
        self._depth = 0

    async def acquire(self) -> None:
        task = asyncio.current_task()
        if self._owner is task and task is not None:
            self._depth += 1
            return
        await self._lock.acquire()
        self._owner = task
        self._depth = 1

    def release(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._owner = None
            self._lock.release()


class UserLocks:
    """Registry of per-user locks; entries vanish once nobody holds them."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[int, _UserLock] = weakref.WeakValueDictionary()

    def _get(self, user_id: int) -> _UserLock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = _UserLock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        lock = self._get(user_id)
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()


# Shared by every service instance in the process
user_locks = UserLocks()

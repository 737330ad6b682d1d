"""
Learning Profile Engine - Per-Subject Locks
Serializes read-merge-write cycles on the same profile within one process
"""
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from profile_engine.core.exceptions import PersistenceConflict


class ProfileLockRegistry:
    """
    One ``asyncio.Lock`` per profile key.

    Different keys never block each other. Locks nobody holds or waits on
    are dropped automatically. Across processes the version column on the
    profile row is what keeps writes safe.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str, timeout: float) -> AsyncIterator[None]:
        lock = self._lock_for(key)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            raise PersistenceConflict(
                f"Timed out after {timeout}s waiting for another submission on the same profile"
            ) from None
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()


def profile_key(profile_id) -> str:
    return f"profile:{profile_id}"


def subject_key(subject_name: str, age_bucket) -> str:
    return f"subject:{subject_name.strip().lower()}|{getattr(age_bucket, 'value', age_bucket)}"

"""Per-artwork lock registry for serializing index read-then-write sequences."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ArtworkLockRegistry:
    """Manages one asyncio lock per (internal ref, artwork id).

    Only serializes writers inside this process; cross-process safety comes
    from the conditional update each holder performs.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._holders: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, internal_ref: str, artwork_id: str) -> AsyncIterator[None]:
        """Hold the artwork's lock for the duration of the block."""
        key = (internal_ref, artwork_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                # Last interested coroutine drops the lock so the registry stays bounded.
                del self._holders[key]
                self._locks.pop(key, None)

    def is_locked(self, internal_ref: str, artwork_id: str) -> bool:
        """Check whether an artwork's lock is currently held."""
        lock = self._locks.get((internal_ref, artwork_id))
        return bool(lock and lock.locked())

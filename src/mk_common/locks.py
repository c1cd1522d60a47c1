"""Per-key asyncio locks.

Serializes writers touching the same account, listing or order inside one
process. Cross-process safety comes from the version compare-and-set in the
repositories; the lock only keeps the common case free of retries.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager


class KeyedLocks:
    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, key: str) -> asyncio.Lock:
        return self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Acquire the locks for ``keys`` in sorted order (deadlock-free)."""
        async with AsyncExitStack() as stack:
            for key in _ordered(keys):
                await stack.enter_async_context(self._locks[key])
            yield

    def discard(self, key: str) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]


def _ordered(keys: Iterable[str]) -> list[str]:
    return sorted(set(keys))

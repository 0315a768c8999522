"""In-memory cache repository implementation."""

from __future__ import annotations

import asyncio
import time
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, override

from cache_repo.config import DEFAULT_SCAN_COUNT

from .protocol import CacheRepo, check_key, check_scan, check_ttl


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable
    from datetime import timedelta


class InMemoryCacheRepo(CacheRepo):
    """Simple in-memory cache repository for local development and tests.

    Expired items are dropped lazily when touched. A scan sorts the keyspace
    once and cursors are positions in that snapshot, so keys written mid-scan
    are missed and deletes do not shift later pages.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ) -> None:
        super().__init__()
        check_scan(0, scan_count)
        self._store: dict[str, tuple[bytes, float | None]] = {}
        self._clock = clock
        self._scan_count = scan_count
        self._lock = asyncio.Lock()

    def _expired(self, entry: tuple[bytes, float | None]) -> bool:
        deadline = entry[1]
        return deadline is not None and deadline <= self._clock()

    def _live(self, key: str) -> tuple[bytes, float | None] | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._store[key]
            return None
        return entry

    def _matches(self, key: str, pattern: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and not self._expired(entry) and fnmatchcase(key, pattern)

    async def _page(self, keys: list[str], pattern: str, cursor: int, count: int) -> list[str]:
        async with self._lock:
            return [key for key in keys[cursor : cursor + count] if self._matches(key, pattern)]

    async def _scan(self, pattern: str, cursor: int, count: int | None) -> AsyncIterator[list[str]]:
        if count is None:
            count = self._scan_count
        check_scan(cursor, count)
        async with self._lock:
            keys = sorted(self._store)
        while True:
            yield await self._page(keys, pattern, cursor, count)
            cursor += count
            if cursor >= len(keys):
                return

    @override
    async def find_item(self, key: str) -> bytes | None:
        """Return the value stored at key, or None when key does not exist."""
        check_key(key)
        async with self._lock:
            entry = self._live(key)
        return None if entry is None else entry[0]

    @override
    async def save_item(self, key: str, value: bytes, ttl: timedelta | None) -> None:
        """Store value at key, replacing any previous value and expiration."""
        check_key(key)
        check_ttl(ttl)
        deadline = None if ttl is None else self._clock() + ttl.total_seconds()
        async with self._lock:
            self._store[key] = (bytes(value), deadline)

    @override
    async def remove_item(self, key: str) -> None:
        """Delete key if present."""
        check_key(key)
        async with self._lock:
            _ = self._store.pop(key, None)

    @override
    async def find_keys(self, pattern: str, cursor: int = 0, count: int | None = None) -> list[str]:
        """Return every live key matching pattern from cursor onwards."""
        found: list[str] = []
        async for page in self._scan(pattern, cursor, count):
            found.extend(page)
        return found

    @override
    async def delete_with_keyword(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete every key matching pattern, one page at a time."""
        async for page in self._scan(pattern, cursor, count):
            await self.delete_with_keys(page)

    @override
    async def delete_with_keys(self, keys: Iterable[str]) -> None:
        """Delete each of the given keys."""
        async with self._lock:
            for key in keys:
                _ = self._store.pop(key, None)

    @override
    async def delete_without_ttl(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete keys matching pattern that were saved without a ttl."""
        async for page in self._scan(pattern, cursor, count):
            async with self._lock:
                for key in page:
                    entry = self._live(key)
                    if entry is not None and entry[1] is None:
                        del self._store[key]

    @override
    async def close(self) -> None:
        """Release repository resources."""
        return

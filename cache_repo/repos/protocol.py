"""Cache repository interface definitions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import timedelta


NO_EXPIRATION = -1
"""TTL reply for a key that exists but has no expiration set."""


def check_key(key: str) -> None:
    if not key:
        msg = "key must not be empty"
        raise ValueError(msg)


def check_ttl(ttl: timedelta | None) -> None:
    if ttl is not None and ttl.total_seconds() <= 0:
        msg = "ttl must be positive, pass None to keep the item without expiration"
        raise ValueError(msg)


def check_scan(cursor: int, count: int) -> None:
    if cursor < 0:
        msg = "cursor must not be negative"
        raise ValueError(msg)
    if count <= 0:
        msg = "count must be positive"
        raise ValueError(msg)


class CacheRepo(ABC):
    """Async cache repository interface.

    Item operations raise store errors to the caller. The bulk delete
    operations are best-effort: failures are logged and never raised.
    """

    @abstractmethod
    async def find_item(self, key: str) -> bytes | None:
        """Return the value stored at key, or None when key does not exist."""

    @abstractmethod
    async def save_item(self, key: str, value: bytes, ttl: timedelta | None) -> None:
        """Store value at key, expiring after ttl. ``None`` keeps it forever."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete key if present."""

    @abstractmethod
    async def find_keys(self, pattern: str, cursor: int = 0, count: int | None = None) -> list[str]:
        """Scan from cursor until completion and return every key matching pattern."""

    @abstractmethod
    async def delete_with_keyword(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete every key matching pattern while scanning."""

    @abstractmethod
    async def delete_with_keys(self, keys: Iterable[str]) -> None:
        """Delete each of the given keys."""

    @abstractmethod
    async def delete_without_ttl(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete keys matching pattern that have no expiration set."""

    @abstractmethod
    async def close(self) -> None:
        """Release repository resources."""

"""Redis cache repository implementation."""

from __future__ import annotations

import contextlib
from datetime import timedelta
from inspect import isawaitable
from typing import TYPE_CHECKING, Any, override

import redis.asyncio as redis_async
from redis.exceptions import RedisError

from cache_repo.config import DEFAULT_SCAN_COUNT, RedisSettings, split_address
from cache_repo.errors import CacheUnavailableError
from cache_repo.log import get_logger

from .protocol import NO_EXPIRATION, CacheRepo, check_key, check_scan, check_ttl


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

    OnConnectHook = Callable[[Any], Awaitable[None] | None]


_STORE_ERRORS = (RedisError, OSError)
_SECOND = timedelta(seconds=1)
_MILLISECOND = timedelta(milliseconds=1)


def _decode_key(value: str | bytes) -> str:
    # keys are arbitrary bytes; surrogateescape keeps them lossless
    if isinstance(value, bytes):
        return value.decode("utf-8", "surrogateescape")
    return value


def _encode_key(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8", "surrogateescape")


def _expiry_arguments(ttl: timedelta | None) -> dict[str, int]:
    if ttl is None:
        return {}
    if ttl % _SECOND:
        return {"px": max(1, ttl // _MILLISECOND)}
    return {"ex": ttl // _SECOND}


async def _close_client(client: Any) -> None:
    close_method = getattr(client, "aclose", None)
    if close_method is None:
        close_method = getattr(client, "close", None)
    if close_method is None:
        return

    maybe_awaitable = close_method()
    if isawaitable(maybe_awaitable):
        await maybe_awaitable


def _connect_func(on_connect: OnConnectHook) -> Callable[[Any], Awaitable[None]]:
    # redis-py skips its own handshake when a connect func is given
    async def redis_connect_func(connection: Any) -> None:
        await connection.on_connect()
        maybe_awaitable = on_connect(connection)
        if isawaitable(maybe_awaitable):
            await maybe_awaitable

    return redis_connect_func


def build_client(settings: RedisSettings, *, on_connect: OnConnectHook | None = None) -> redis_async.Redis:
    """Create an unconnected ``redis.asyncio`` client from settings.

    Parameters
    ----------
    settings
        Connection settings. ``network`` selects between a tcp ``host:port``
        address and a unix socket path.
    on_connect
        Optional hook called with every new connection once the standard
        handshake is done. May be a plain function or a coroutine function.
    """
    kwargs: dict[str, Any] = {
        "db": settings.db,
        "username": settings.username,
        "password": settings.password.get_secret_value() if settings.password else None,
        "client_name": settings.client_name,
        "socket_timeout": settings.socket_timeout,
    }
    if settings.network == "unix":
        kwargs["unix_socket_path"] = settings.address
    else:
        kwargs["host"], kwargs["port"] = split_address(settings.address)
    if on_connect is not None:
        kwargs["redis_connect_func"] = _connect_func(on_connect)
    return redis_async.Redis(**kwargs)


class RedisCacheRepo(CacheRepo):
    """Cache repository backed by a ``redis.asyncio`` client.

    Each call maps onto single-key Redis commands. Scans walk the keyspace with
    ``SCAN`` until the server hands back cursor 0; keys changed during a scan
    may or may not be seen.
    """

    def __init__(
        self,
        client: Any,
        *,
        logger: Any | None = None,
        client_name: str = "redis-client",
        scan_count: int = DEFAULT_SCAN_COUNT,
    ) -> None:
        """Wrap an async client.

        Parameters
        ----------
        client
            Client with ``get/set/delete/scan/ttl`` coroutines and ``aclose``.
        logger
            structlog logger receiving one error record per failed command.
        client_name
            Store identity attached to every log record.
        scan_count
            Page size hint used when a scan is called without ``count``.
        """
        super().__init__()
        check_scan(0, scan_count)
        self._client = client
        self._scan_count = scan_count
        self._closed = False
        self._log = (logger or get_logger(__name__)).bind(use_case="cache", cache_db=client_name)

    @override
    async def find_item(self, key: str) -> bytes | None:
        """Return the value stored at key, or None when key does not exist."""
        check_key(key)
        try:
            value = await self._client.get(_encode_key(key))
        except _STORE_ERRORS as error:
            self._log.error("find item failed", key=key, error=str(error))
            raise
        if isinstance(value, str):
            return value.encode()
        return value

    @override
    async def save_item(self, key: str, value: bytes, ttl: timedelta | None) -> None:
        """Store value at key, replacing any previous value and expiration."""
        check_key(key)
        check_ttl(ttl)
        try:
            _ = await self._client.set(_encode_key(key), value, **_expiry_arguments(ttl))
        except _STORE_ERRORS as error:
            self._log.error("save item failed", key=key, error=str(error))
            raise

    @override
    async def remove_item(self, key: str) -> None:
        """Delete key. Absent keys are ignored by the server."""
        check_key(key)
        try:
            _ = await self._client.delete(_encode_key(key))
        except _STORE_ERRORS as error:
            self._log.error("remove item failed", key=key, error=str(error))
            raise

    async def _scan(self, pattern: str, cursor: int, count: int) -> AsyncIterator[bytes]:
        while True:
            cursor, keys = await self._client.scan(cursor=cursor, match=pattern, count=count)
            for key in keys:
                yield _encode_key(key)
            if cursor == 0:
                return

    def _scan_arguments(self, cursor: int, count: int | None) -> int:
        if count is None:
            count = self._scan_count
        check_scan(cursor, count)
        return count

    @override
    async def find_keys(self, pattern: str, cursor: int = 0, count: int | None = None) -> list[str]:
        """Return every key matching pattern, scanning from cursor to completion.

        ``count`` only sets the page size of each ``SCAN`` round trip. On a
        failed round trip nothing is returned and the error is raised.
        Keys that are not valid UTF-8 come back with surrogate escapes.
        """
        count = self._scan_arguments(cursor, count)
        keys: list[str] = []
        try:
            async with contextlib.aclosing(self._scan(pattern, cursor, count)) as scan:
                async for key in scan:
                    keys.append(_decode_key(key))
        except _STORE_ERRORS as error:
            self._log.error("find keys failed", pattern=pattern, cursor=cursor, error=str(error))
            raise
        return keys

    async def _delete_quietly(self, key: bytes) -> None:
        try:
            _ = await self._client.delete(key)
        except _STORE_ERRORS as error:
            self._log.error("delete key failed", key=_decode_key(key), error=str(error))

    @override
    async def delete_with_keyword(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete keys matching pattern as the scan discovers them."""
        count = self._scan_arguments(cursor, count)
        try:
            async with contextlib.aclosing(self._scan(pattern, cursor, count)) as scan:
                async for key in scan:
                    await self._delete_quietly(key)
        except _STORE_ERRORS as error:
            self._log.error("scan failed", pattern=pattern, cursor=cursor, error=str(error))

    @override
    async def delete_with_keys(self, keys: Iterable[str]) -> None:
        """Delete each key, logging the ones that fail.

        Keys returned by :meth:`find_keys` can be passed back unchanged, binary
        ones included.
        """
        for key in keys:
            await self._delete_quietly(_encode_key(key))

    @override
    async def delete_without_ttl(self, pattern: str, cursor: int = 0, count: int | None = None) -> None:
        """Delete keys matching pattern whose TTL reports no expiration.

        A key whose TTL lookup fails is kept.
        """
        count = self._scan_arguments(cursor, count)
        try:
            async with contextlib.aclosing(self._scan(pattern, cursor, count)) as scan:
                async for key in scan:
                    try:
                        remaining = await self._client.ttl(key)
                    except _STORE_ERRORS as error:
                        self._log.error("ttl lookup failed", key=_decode_key(key), error=str(error))
                        continue
                    if remaining == NO_EXPIRATION:
                        await self._delete_quietly(key)
        except _STORE_ERRORS as error:
            self._log.error("scan failed", pattern=pattern, cursor=cursor, error=str(error))

    @override
    async def close(self) -> None:
        """Close the client. Later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        await _close_client(self._client)


async def new_cache_repo(
    settings: RedisSettings | None = None,
    logger: Any | None = None,
    *,
    on_connect: OnConnectHook | None = None,
    client: Any | None = None,
) -> tuple[RedisCacheRepo, Callable[[], Awaitable[None]]]:
    """Connect to Redis and return the repository with its teardown coroutine.

    The connection is probed with ``PING`` first. When the probe fails the
    client is closed and :class:`CacheUnavailableError` is raised.
    """
    if settings is None:
        settings = RedisSettings()
    if client is None:
        client = build_client(settings, on_connect=on_connect)

    try:
        _ = await client.ping()
    except _STORE_ERRORS as error:
        await _close_client(client)
        msg = f"redis at {settings.address} did not answer ping: {error}"
        raise CacheUnavailableError(msg) from error

    repo = RedisCacheRepo(
        client,
        logger=logger,
        client_name=settings.client_name,
        scan_count=settings.scan_count,
    )
    return repo, repo.close


@contextlib.asynccontextmanager
async def open_cache_repo(
    settings: RedisSettings | None = None,
    logger: Any | None = None,
    *,
    on_connect: OnConnectHook | None = None,
    client: Any | None = None,
) -> AsyncIterator[RedisCacheRepo]:
    """Async context manager around :func:`new_cache_repo` that always tears down."""
    repo, stop = await new_cache_repo(settings, logger, on_connect=on_connect, client=client)
    try:
        yield repo
    finally:
        await stop()

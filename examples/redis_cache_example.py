"""Minimal example for RedisCacheRepo against a local Redis/Dragonfly."""

import asyncio
from datetime import timedelta

from cache_repo.config import RedisSettings
from cache_repo.log import configure_logging
from cache_repo.repos.redis import new_cache_repo


def on_connect(_connection: object) -> None:
    print("Connected to Redis")


async def run() -> None:
    """Save a key with a ttl, read it back, then clean up a keyspace prefix."""
    settings = RedisSettings(network="tcp", address="localhost:6379", client_name="redis-client")
    repo, stop = await new_cache_repo(settings, on_connect=on_connect)
    try:
        await repo.save_item("key", b"value", timedelta(seconds=10))
        value = await repo.find_item("key")
        print("key:", value.decode() if value is not None else None)

        await repo.save_item("session:1", b"a", None)
        await repo.save_item("session:2", b"b", timedelta(minutes=5))
        print("sessions:", await repo.find_keys("session:*", count=10))

        await repo.delete_without_ttl("session:*")
        print("sessions with ttl:", await repo.find_keys("session:*"))
    finally:
        await stop()


def main() -> None:
    configure_logging("info")
    asyncio.run(run())


if __name__ == "__main__":
    main()

"""Minimal example for the in-memory cache repository."""

import asyncio
from datetime import timedelta

from cache_repo.repos.in_memory import InMemoryCacheRepo


async def run() -> None:
    """Run a save/find/bulk-delete flow without a server."""
    repo = InMemoryCacheRepo()
    await repo.save_item("user:alice", b'{"age": 30}', timedelta(seconds=30))
    await repo.save_item("user:bob", b'{"age": 42}', None)
    print("users:", await repo.find_keys("user:*"))

    await repo.delete_with_keys(["user:alice", "user:carol"])
    print("alice:", await repo.find_item("user:alice"))
    print("bob:", await repo.find_item("user:bob"))
    await repo.close()


if __name__ == "__main__":
    asyncio.run(run())

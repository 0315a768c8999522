"""Cache repository contract and implementations."""

from .in_memory import InMemoryCacheRepo
from .protocol import NO_EXPIRATION, CacheRepo
from .redis import RedisCacheRepo, build_client, new_cache_repo, open_cache_repo


__all__ = [
    "NO_EXPIRATION",
    "CacheRepo",
    "InMemoryCacheRepo",
    "RedisCacheRepo",
    "build_client",
    "new_cache_repo",
    "open_cache_repo",
]

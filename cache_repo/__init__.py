"""redis-cache-repo - item and bulk operations over a Redis keyspace"""

from ._version import version as __version__
from .config import RedisSettings
from .errors import CacheRepoError, CacheUnavailableError
from .log import configure_logging, get_logger
from .repos import CacheRepo, InMemoryCacheRepo, RedisCacheRepo, new_cache_repo, open_cache_repo


__all__ = [
    "CacheRepo",
    "CacheRepoError",
    "CacheUnavailableError",
    "InMemoryCacheRepo",
    "RedisCacheRepo",
    "RedisSettings",
    "__version__",
    "configure_logging",
    "get_logger",
    "new_cache_repo",
    "open_cache_repo",
]

"""Exceptions raised by cache repositories."""

from __future__ import annotations


class CacheRepoError(Exception):
    """Base class for cache repository errors."""


class CacheUnavailableError(CacheRepoError):
    """The remote store did not answer the liveness probe."""

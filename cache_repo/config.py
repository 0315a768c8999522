"""Connection settings for the Redis cache repository."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SCAN_COUNT = 100


def split_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` address into its parts."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        msg = f"tcp address must be host:port, got {address!r}"
        raise ValueError(msg)
    if not port.isdigit() or not 0 < int(port) < 65536:  # noqa: PLR2004
        msg = f"invalid port in address {address!r}"
        raise ValueError(msg)
    return host.strip("[]"), int(port)


class RedisSettings(BaseSettings):
    """Settings used to open the cache connection.

    Values can be provided directly or through ``CACHE_REDIS_*`` environment
    variables, e.g. ``CACHE_REDIS_ADDRESS=cache:6379``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHE_REDIS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    network: Literal["tcp", "unix"] = "tcp"
    address: str = "localhost:6379"
    client_name: str = "redis-client"
    db: int = Field(default=0, ge=0)
    username: str | None = None
    password: SecretStr | None = None
    socket_timeout: float | None = Field(default=None, gt=0)
    scan_count: int = Field(default=DEFAULT_SCAN_COUNT, gt=0)
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_log_level(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_address(self) -> RedisSettings:
        if not self.address:
            msg = "address must not be empty"
            raise ValueError(msg)
        if self.network == "tcp":
            _ = split_address(self.address)
        return self

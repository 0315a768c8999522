"""Interface for ``python -m cache_repo``."""

from __future__ import annotations

import asyncio
import sys
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from datetime import timedelta
from typing import TYPE_CHECKING

from ._version import version
from .config import RedisSettings
from .log import configure_logging, get_logger
from .repos import open_cache_repo


if TYPE_CHECKING:
    from collections.abc import Sequence

    from .repos import CacheRepo


__all__ = ["main"]


def _ttl(value: str) -> timedelta | None:
    seconds = float(value)
    if seconds < 0:
        msg = f"ttl must not be negative, got {value}"
        raise ArgumentTypeError(msg)
    return timedelta(seconds=seconds) if seconds > 0 else None


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="cache-repo", description="Item and bulk operations over a Redis keyspace.")
    _ = parser.add_argument("-v", "--version", action="version", version=version)
    _ = parser.add_argument("--address", help="host:port, or socket path with --network unix")
    _ = parser.add_argument("--network", choices=["tcp", "unix"])
    _ = parser.add_argument("--client-name")
    commands = parser.add_subparsers(dest="command", required=True)

    find = commands.add_parser("find", help="print the value stored at a key")
    _ = find.add_argument("key")

    save = commands.add_parser("save", help="store a value")
    _ = save.add_argument("key")
    _ = save.add_argument("value")
    _ = save.add_argument("--ttl", type=_ttl, default=None, help="expiration in seconds, 0 keeps forever")

    remove = commands.add_parser("remove", help="delete a key")
    _ = remove.add_argument("key")

    delete_keys = commands.add_parser("delete-keys", help="delete the listed keys")
    _ = delete_keys.add_argument("keys", nargs="+")

    for name, text in (
        ("keys", "list keys matching a pattern"),
        ("delete-keyword", "delete keys matching a pattern"),
        ("delete-without-ttl", "delete keys matching a pattern that never expire"),
    ):
        scan = commands.add_parser(name, help=text)
        _ = scan.add_argument("pattern")
        _ = scan.add_argument("--cursor", type=int, default=0)
        _ = scan.add_argument("--count", type=int, default=None)

    _ = commands.add_parser("demo", help="save a key with a 10 second ttl and read it back")
    return parser


async def _dispatch(repo: CacheRepo, args: Namespace) -> None:  # noqa: C901
    if args.command == "find":
        value = await repo.find_item(args.key)
        if value is not None:
            print(value.decode(errors="replace"))
    elif args.command == "save":
        await repo.save_item(args.key, args.value.encode(), args.ttl)
    elif args.command == "remove":
        await repo.remove_item(args.key)
    elif args.command == "delete-keys":
        await repo.delete_with_keys(args.keys)
    elif args.command == "keys":
        for key in await repo.find_keys(args.pattern, args.cursor, args.count):
            print(key)
    elif args.command == "delete-keyword":
        await repo.delete_with_keyword(args.pattern, args.cursor, args.count)
    elif args.command == "delete-without-ttl":
        await repo.delete_without_ttl(args.pattern, args.cursor, args.count)
    elif args.command == "demo":
        await repo.save_item("key", b"value", timedelta(seconds=10))
        value = await repo.find_item("key")
        print(value.decode() if value is not None else "")


def _on_connect(_connection: object) -> None:
    get_logger(__name__).info("connected to redis")


async def _run(settings: RedisSettings, args: Namespace) -> None:
    async with open_cache_repo(settings, on_connect=_on_connect) as repo:
        await _dispatch(repo, args)


def main(args: Sequence[str] | None = None) -> None:
    """Argument parser for the CLI."""
    parsed = _build_parser().parse_args(args)
    overrides = {
        field: value
        for field, value in (
            ("address", parsed.address),
            ("network", parsed.network),
            ("client_name", parsed.client_name),
        )
        if value is not None
    }
    settings = RedisSettings(**overrides)
    configure_logging(settings.log_level, sys.stderr)
    asyncio.run(_run(settings, parsed))


if __name__ == "__main__":
    main()

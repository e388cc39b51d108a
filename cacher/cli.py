"""
Cacher CLI.

Reads and writes cache entries from the shell using the same settings
(CACHER_* environment variables or .env) as the library.

    cacher get user:1
    cacher set user:1 '{"name": "a"}' --ttl 15
    cacher ttl user:1 0
    cacher delete user:1
    cacher health
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from dotenv import load_dotenv

from cacher.client import Cacher
from cacher.exceptions import ConfigurationError, NotFoundError, StoreError
from cacher.logging import configure_logging

EXIT_OK = 0
EXIT_MISS = 1
EXIT_ERROR = 2


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, default=str))


async def cmd_get(cacher: Cacher, args) -> int:
    """Print a cached value."""
    value = await cacher.get_data(args.key)
    if value is None:
        print(f"No entry for '{args.key}'", file=sys.stderr)
        return EXIT_MISS
    _print_json(value)
    return EXIT_OK


async def cmd_set(cacher: Cacher, args) -> int:
    """Store a JSON value."""
    try:
        value = json.loads(args.value)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON value: {e}", file=sys.stderr)
        return EXIT_ERROR
    await cacher.set_data(args.key, value, args.ttl)
    print(f"Cached '{args.key}' for {args.ttl}s")
    return EXIT_OK


async def cmd_ttl(cacher: Cacher, args) -> int:
    """Reset the expiry of an entry and print its value."""
    try:
        value = await cacher.set_ttl(args.key, args.seconds)
    except NotFoundError:
        print(f"No entry for '{args.key}'", file=sys.stderr)
        return EXIT_MISS
    _print_json(value)
    return EXIT_OK


async def cmd_delete(cacher: Cacher, args) -> int:
    """Delete an entry."""
    await cacher.delete_data(args.key)
    print(f"Deleted '{args.key}'")
    return EXIT_OK


async def cmd_health(cacher: Cacher, args) -> int:
    """Print store health."""
    status = await cacher.health_check()
    _print_json(status)
    return EXIT_OK if status["status"] == "healthy" else EXIT_ERROR


COMMANDS = {
    "get": cmd_get,
    "set": cmd_set,
    "ttl": cmd_ttl,
    "delete": cmd_delete,
    "health": cmd_health,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cacher", description="Cacher - JSON cache entries in Redis")
    parser.add_argument("--address", help="Store host")
    parser.add_argument("--port", type=int, help="Store port")
    parser.add_argument("--db", type=int, help="Logical database index")
    parser.add_argument("--prefix", help="Key namespace prefix")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    get_parser = subparsers.add_parser("get", help="Print a cached value")
    get_parser.add_argument("key")

    set_parser = subparsers.add_parser("set", help="Store a JSON value")
    set_parser.add_argument("key")
    set_parser.add_argument("value", help="JSON text")
    set_parser.add_argument("--ttl", type=int, required=True, help="Seconds to live")

    ttl_parser = subparsers.add_parser("ttl", help="Reset the expiry of an entry")
    ttl_parser.add_argument("key")
    ttl_parser.add_argument("seconds", type=int)

    delete_parser = subparsers.add_parser("delete", help="Delete an entry")
    delete_parser.add_argument("key")

    subparsers.add_parser("health", help="Check store connectivity")
    return parser


def _overrides(args) -> dict:
    overrides = {"address": args.address, "port": args.port, "database_index": args.db}
    return {k: v for k, v in overrides.items() if v is not None}


async def _run(cacher: Cacher, args) -> int:
    async with cacher:
        try:
            return await COMMANDS[args.command](cacher, args)
        except StoreError as e:
            print(f"Store error: {e}", file=sys.stderr)
            return EXIT_ERROR


def main(argv: Optional[list[str]] = None, cacher: Optional[Cacher] = None) -> int:
    """Main entry point with CLI interface."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return EXIT_ERROR

    try:
        if cacher is None:
            cacher = Cacher()
        overrides = _overrides(args)
        if overrides:
            cacher.init(overrides)
        if args.prefix:
            cacher.set_cache_prefix(args.prefix)
        configure_logging(cacher.settings.log_level, cacher.settings.debug)
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    return asyncio.run(_run(cacher, args))


if __name__ == "__main__":
    sys.exit(main())

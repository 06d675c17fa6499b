#!/usr/bin/env python3
"""
Command-line interface for the tinylink service.

Talks to the configured store and cache directly (same environment variables
as the server).

Usage:
    python tinylink_cli.py shorten <url>
    python tinylink_cli.py resolve <short_code>
    python tinylink_cli.py stats <short_code>
    python tinylink_cli.py update <short_code> <url>
    python tinylink_cli.py delete <short_code>
    python tinylink_cli.py sweep
    python tinylink_cli.py health
"""

import argparse
import asyncio
import json
import os
import sys

# Run from a source checkout without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from app import build_components
from config import load_config
from tinylink.common.logging_config import setup_logging
from tinylink.exceptions import TinyLinkError


def _print_result(payload: dict) -> int:
    print(json.dumps({"success": True, **payload}, indent=2, default=str))
    return 0


def _print_error(message: str) -> int:
    print(json.dumps({"success": False, "error": message}, indent=2), file=sys.stderr)
    return 1


class TinyLinkCLI:
    """Command-line interface for tinylink."""

    def __init__(self, config, verbose: bool = False):
        """Initialize CLI."""
        self.config = config
        self.logger = setup_logging(level="DEBUG" if verbose else "WARNING")
        self.components = None

    @property
    def service(self):
        return self.components.service

    async def initialize(self):
        """Initialize store, cache and service."""
        self.components = await build_components(self.config, self.logger)

    async def cleanup(self):
        """Cleanup resources."""
        if self.components:
            await self.components.service.close()

    async def shorten(self, url: str) -> int:
        """Shorten a URL."""
        link = await self.service.create_short_link(url)
        return _print_result({
            **link.to_dict(),
            "message": f"Successfully shortened URL to: {link.short_code}",
        })

    async def resolve(self, short_code: str) -> int:
        """Resolve a short code (counts as an access)."""
        long_url = await self.service.resolve(short_code)
        # Let a queued cache-hit increment land before exiting
        await self.service.access_counter.join()
        return _print_result({"short_code": short_code, "long_url": long_url})

    async def stats(self, short_code: str) -> int:
        """Get statistics for a short code."""
        link = await self.service.get_stats(short_code)
        return _print_result(link.to_dict())

    async def update(self, short_code: str, url: str) -> int:
        """Point a short code at a new URL."""
        link = await self.service.update_short_link(short_code, url)
        return _print_result(link.to_dict())

    async def delete(self, short_code: str) -> int:
        """Delete a short code."""
        await self.service.delete_short_link(short_code)
        return _print_result({"short_code": short_code, "message": "Deleted"})

    async def sweep(self) -> int:
        """Run one expiry sweep now."""
        deleted = await self.components.sweeper.sweep_once()
        return _print_result({"deleted": deleted})

    async def health(self) -> int:
        """Check service health."""
        health_status = await self.service.health_check()
        _print_result({"health": health_status})
        return 0 if health_status["overall"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="tinylink CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shorten a URL
  %(prog)s shorten https://example.com/long/url

  # Get statistics
  %(prog)s stats Xy19Ab

  # Purge expired links now
  %(prog)s sweep
        """
    )

    parser.add_argument("--db-url", help="PostgreSQL connection URL (default: DATABASE_URL)")
    parser.add_argument("--redis-url", help="Redis connection URL (default: REDIS_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    shorten_parser = subparsers.add_parser("shorten", help="Shorten a URL")
    shorten_parser.add_argument("url", help="URL to shorten")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a short code (counts an access)")
    resolve_parser.add_argument("short_code", help="Short code to lookup")

    stats_parser = subparsers.add_parser("stats", help="Get URL statistics")
    stats_parser.add_argument("short_code", help="Short code to get stats for")

    update_parser = subparsers.add_parser("update", help="Point a short code at a new URL")
    update_parser.add_argument("short_code", help="Short code to update")
    update_parser.add_argument("url", help="New URL")

    delete_parser = subparsers.add_parser("delete", help="Delete a short code")
    delete_parser.add_argument("short_code", help="Short code to delete")

    subparsers.add_parser("sweep", help="Delete expired short links now")
    subparsers.add_parser("health", help="Check store and cache health")

    return parser


async def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides = {"rate_limit_enabled": False}
    if args.db_url:
        overrides["database_url"] = args.db_url
    if args.redis_url:
        overrides["redis_url"] = args.redis_url
    config = load_config().model_copy(update=overrides)

    cli = TinyLinkCLI(config, verbose=args.verbose)

    try:
        await cli.initialize()

        if args.command == "shorten":
            return await cli.shorten(args.url)
        elif args.command == "resolve":
            return await cli.resolve(args.short_code)
        elif args.command == "stats":
            return await cli.stats(args.short_code)
        elif args.command == "update":
            return await cli.update(args.short_code, args.url)
        elif args.command == "delete":
            return await cli.delete(args.short_code)
        elif args.command == "sweep":
            return await cli.sweep()
        elif args.command == "health":
            return await cli.health()
        else:
            parser.print_help()
            return 1

    except TinyLinkError as e:
        return _print_error(str(e))

    finally:
        await cli.cleanup()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)

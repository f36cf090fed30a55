"""Entry point for offline-sync CLI commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from offline_sync.client import OfflineSyncClient

logger = logging.getLogger(__name__)


def _build_client() -> OfflineSyncClient:
    from offline_sync.client import OfflineSyncClient
    from offline_sync.config import get_settings

    return OfflineSyncClient(get_settings())


def _setup_logging(args: argparse.Namespace) -> None:
    from offline_sync.config import get_settings
    from offline_sync.core.logging import configure_logging

    settings = get_settings()
    level = "DEBUG" if args.verbose else settings.log_level
    configure_logging(level=level, json_format=settings.log_json)


def run_version() -> None:
    """Print the package version."""
    from offline_sync import __version__

    print(f"offline-sync {__version__}")


def run_status(args: argparse.Namespace) -> int:
    """List queued mutations.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success).
    """
    from offline_sync.config import get_settings

    client = _build_client()
    items = client.services.queue.drain()

    if args.json:
        print(json.dumps([item.to_json() for item in items], indent=2))
        return 0

    print(f"Storage: {get_settings().storage_path}")
    if not items:
        print("Queue is empty.")
        return 0

    print(f"Queued mutations ({len(items)}):")
    for item in items:
        print(
            f"  - {item.id} {item.target.method} {item.target.url} "
            f"(attempts: {item.attempts}, queued: {item.created_at})"
        )
    return 0


def run_flush(args: argparse.Namespace) -> int:
    """Drain the queue once against the configured remote.

    Returns:
        Exit code (0 if nothing was retained, 1 if items remain queued).
    """
    client = _build_client()

    async def _flush() -> int:
        try:
            report = await client.flush()
        finally:
            await client.stop()
        print(
            f"Delivered: {len(report.delivered)}, "
            f"Retained: {len(report.retained)}, "
            f"Dropped: {len(report.dropped)}"
        )
        return 1 if report.retained else 0

    return asyncio.run(_flush())


def run_resume(args: argparse.Namespace) -> int:
    """Reconcile one owner's progress and print the winner.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    from offline_sync.core.errors import OfflineSyncError

    client = _build_client()

    async def _resume() -> int:
        try:
            result = await client.resume(args.owner_id)
        except OfflineSyncError as e:
            logger.error(f"Resume failed: {e}", exc_info=args.verbose)
            print(f"Error: {e}")
            return 1
        finally:
            await client.stop()

        if result.snapshot is None:
            print(f"No progress recorded for {args.owner_id}.")
            return 0
        print(
            json.dumps(
                {
                    "owner_id": result.snapshot.owner_id,
                    "step": result.snapshot.step,
                    "data": result.snapshot.data,
                    "source": result.source,
                    "published": result.published,
                },
                indent=2,
            )
        )
        return 0

    return asyncio.run(_resume())


def run_clear(args: argparse.Namespace) -> int:
    """Drop every queued mutation.

    Returns:
        Exit code (0 for success or abort).
    """
    client = _build_client()
    queue = client.services.queue
    count = queue.size()
    if count == 0:
        print("Queue is empty.")
        return 0

    if not args.yes:
        response = input(f"Discard {count} queued mutation(s)? [y/N] ").strip().lower()
        if response not in ("y", "yes"):
            print("Aborted.")
            return 0

    removed = queue.clear()
    print(f"Removed {removed} queued mutation(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="offline-sync",
        description="Inspect and drain the offline mutation queue",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    status_parser = subparsers.add_parser(
        "status",
        help="List queued mutations",
    )
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the queue as JSON",
    )

    subparsers.add_parser(
        "flush",
        help="Drain the queue once against the configured remote",
    )

    resume_parser = subparsers.add_parser(
        "resume",
        help="Reconcile local and remote progress for an owner",
    )
    resume_parser.add_argument(
        "owner_id",
        help="Owner whose progress to reconcile",
    )

    clear_parser = subparsers.add_parser(
        "clear",
        help="Discard every queued mutation",
    )
    clear_parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point with subcommand support."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        run_version()
        sys.exit(0)

    _setup_logging(args)

    if args.command == "status":
        sys.exit(run_status(args))
    elif args.command == "flush":
        sys.exit(run_flush(args))
    elif args.command == "resume":
        sys.exit(run_resume(args))
    elif args.command == "clear":
        sys.exit(run_clear(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

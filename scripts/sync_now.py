# =============================================================================
# scripts/sync_now.py
# Pushes every unsynced local record to the remote store
# Run: python scripts/sync_now.py [--secrets config/secrets.toml] [--status-only]
# =============================================================================
"""
Runs one sweep against the configured record store and prints the sync
status before and after.

Usage:
    python scripts/sync_now.py
    python scripts/sync_now.py --secrets config/secrets.toml --verbose
    python scripts/sync_now.py --status-only
"""

from __future__ import annotations
import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tracker_core import TrackerApp, load_config
from tracker_core.errors import TrackerError, handle_error
from tracker_core.logging import setup_logging
from tracker_core.offline import SyncStatusReport


def print_header(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 60)
    print(f" {title}")
    print("=" * 60)


def print_status(status: SyncStatusReport):
    for table, count in status.to_dict().items():
        print(f"  {table:<20} {count}")


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.secrets)
    setup_logging(args.log_level or config.log_level, log_to_file=config.log_to_file)

    app = TrackerApp(config)
    await app.store.initialize()
    try:
        print_header(f"Sync status before ({app.store.mode} store)")
        print_status(await app.get_sync_status())

        if args.status_only:
            return 0

        result = await app.sync_now()
        print_header("Sweep result")
        print(f"  pushed   {result.pushed}")
        print(f"  deleted  {result.deleted}")
        print(f"  skipped  {result.skipped}")
        print(f"  failed   {result.failed}")

        print_header("Sync status after")
        print_status(await app.get_sync_status())
        return 0 if result.success else 1
    finally:
        await app.store.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Push unsynced tracker records to the remote store")
    parser.add_argument("--secrets", help="Path to secrets.toml (default: config/secrets.toml)")
    parser.add_argument("--status-only", action="store_true", help="Only print the sync status")
    parser.add_argument("--log-level", help="Override the configured log level (e.g. DEBUG)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Shorthand for --log-level DEBUG")
    args = parser.parse_args()
    if args.verbose:
        args.log_level = "DEBUG"

    try:
        return asyncio.run(run(args))
    except TrackerError as e:
        print(handle_error(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())

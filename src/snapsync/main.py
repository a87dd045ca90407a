"""Command line entry point."""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .config.settings import get_settings
from .core import SyncService, SyncResult
from .exceptions import SnapSyncError
from .utils.logging import setup_logging, get_logger


class SnapSyncApp:
    """Runs one CLI command against a service built from settings."""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.settings = get_settings()
        self.logger = get_logger("snapsync")
        self.service: Optional[SyncService] = None

    async def run(self) -> int:
        self.service = SyncService.from_settings(
            config_path=self.args.config,
            database_url=self.args.database_url
        )
        try:
            if self.args.command == "pull":
                return self._report(await self.service.pull(self.args.mountpoint))
            elif self.args.command == "push":
                return self._report(await self.service.push(self.args.mountpoint))
            elif self.args.command == "list":
                return await self._list()
            elif self.args.command == "status":
                print(json.dumps(await self.service.get_status(), indent=2))
                return 0
            raise ValueError(f"Unknown command: {self.args.command}")
        finally:
            await self.service.close()

    def _report(self, result: SyncResult) -> int:
        if result.error is not None:
            print(f"{result.direction.value} {result.mountpoint}: failed: {result.error}", file=sys.stderr)
            return 1

        for failure in result.listener_failures:
            print(f"{failure.listener}: {failure.original}", file=sys.stderr)

        summary = f"{result.direction.value} {result.mountpoint}: {result.state.value}"
        if result.loaded_from is not None:
            summary += f", {result.entries_loaded} entries loaded"
        if result.snapshot_size is not None:
            summary += f", {result.snapshot_size} bytes pushed"
        print(summary)

        return 1 if result.listener_failures else 0

    async def _list(self) -> int:
        for entry in await self.service.list_entries(self.args.mountpoint):
            size = "-" if entry.contents is None else str(len(entry.contents))
            print(f"{entry.mode:o}\t{size}\t{entry.timestamp.isoformat()}\t{entry.path}")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapsync",
        description="Synchronize a local file-entry store with remote snapshot listeners",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s pull /data                         # Replace /data with the first remote snapshot
  %(prog)s push /data                         # Send /data to every save listener
  %(prog)s list /data                         # Show local entries
  %(prog)s --config config/listeners.yaml status
        """
    )

    parser.add_argument("--config", help="Listener configuration file (YAML or JSON)")
    parser.add_argument("--database-url", help="Override the local store database URL")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default from settings)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command, help_text in (
        ("pull", "remote-to-local sync"),
        ("push", "local-to-remote sync"),
        ("list", "list local entries"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("mountpoint", nargs="?", help="Mountpoint (default from configuration)")

    subparsers.add_parser("status", help="show configured listeners")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    if not hasattr(args, "mountpoint"):
        args.mountpoint = None

    setup_logging(log_level=args.log_level)

    try:
        return asyncio.run(SnapSyncApp(args).run())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except SnapSyncError as e:
        print(f"snapsync: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

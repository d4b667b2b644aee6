"""One-shot local sync using the configured settings."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from vaultsync.config import Settings
from vaultsync.exceptions import StoreError
from vaultsync.remote.base import RemoteFetchError
from vaultsync.runtime import open_runtime
from vaultsync.services.sync_service import SyncReport

logger = logging.getLogger(__name__)


async def run_once(settings: Settings) -> SyncReport:
    """Open a runtime, run one sync and close everything again."""
    if settings.remote_backend == "github" and not (settings.github_owner and settings.github_repo):
        raise ValueError("GITHUB_OWNER and GITHUB_REPO must be set for the github backend")
    async with open_runtime(settings) as runtime:
        return await runtime.sync_service.sync()


def print_report(report: SyncReport) -> None:
    for kind, summary in (("images", report.images), ("articles", report.articles)):
        print(
            f"{kind:<9} fetched={summary.fetched} unchanged={summary.unchanged} "
            f"deleted={summary.deleted} failed={summary.failed} skipped={summary.skipped} "
            f"delete_failed={summary.delete_failed}"
        )
        for failure in summary.failures:
            print(f"  ! {failure.source_path}: {failure.reason}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="vaultsync-sync",
        description="Sync the configured repository into the content store once",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Store processed markdown instead of compiling with pandoc",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    settings = Settings()
    if args.raw:
        settings = settings.model_copy(update={"pipeline_mode": "raw"})
    if settings.store_backend == "memory":
        logger.warning("STORE_BACKEND=memory: the synced cache is discarded on exit")

    try:
        report = asyncio.run(run_once(settings))
    except (RemoteFetchError, StoreError, RuntimeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print_report(report)
    if not report.ok:
        sys.exit(2)


if __name__ == "__main__":
    main()

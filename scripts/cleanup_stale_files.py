#!/usr/bin/env python3
"""
Cleanup Stale Files Script

Deletes documents stuck in a non-terminal lifecycle state (and their
storage objects). Run it periodically, e.g. from cron.

Usage:
    $ python scripts/cleanup_stale_files.py
    $ python scripts/cleanup_stale_files.py --max-age-minutes 120 --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import timedelta

from docvault.core.database import dispose_engine, session_scope
from docvault.core.logging import setup_logging
from docvault.repositories.files import FileRepository
from docvault.services.cleanup import reap_stale_files
from docvault.services.storage import LocalObjectStorage

logger = logging.getLogger("docvault.scripts.cleanup")


async def run(max_age: timedelta, dry_run: bool) -> int:
    try:
        async with session_scope() as session:
            reaped = await reap_stale_files(
                session,
                FileRepository(),
                LocalObjectStorage(),
                max_age,
                dry_run=dry_run,
            )
    finally:
        await dispose_engine()
    return len(reaped)


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete documents stuck mid-ingestion")
    parser.add_argument(
        "--max-age-minutes",
        type=int,
        default=60,
        help="Only touch documents older than this (default: 60)",
    )
    parser.add_argument("--dry-run", action="store_true", help="List without deleting")
    args = parser.parse_args()

    setup_logging()
    count = asyncio.run(run(timedelta(minutes=args.max_age_minutes), args.dry_run))
    logger.info("Done: %d stale files", count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

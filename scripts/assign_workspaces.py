#!/usr/bin/env python3
"""
Assign Workspaces Script

Grants an account access to several workspaces at once. Assignments run
concurrently; a failed one is reported and does not undo the others.

Usage:
    $ python scripts/assign_workspaces.py ACCOUNT_ID WORKSPACE_ID [WORKSPACE_ID ...]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid

from docvault.core.database import dispose_engine, get_session_factory
from docvault.core.logging import setup_logging
from docvault.services.accounts import AssignmentReport, assign_workspaces

logger = logging.getLogger("docvault.scripts.assign_workspaces")


async def run(account_id: uuid.UUID, workspace_ids: list[uuid.UUID]) -> AssignmentReport:
    try:
        return await assign_workspaces(get_session_factory(), account_id, workspace_ids)
    finally:
        await dispose_engine()


def main() -> int:
    parser = argparse.ArgumentParser(description="Assign workspaces to an account")
    parser.add_argument("account_id", type=uuid.UUID)
    parser.add_argument("workspace_ids", type=uuid.UUID, nargs="+")
    args = parser.parse_args()

    setup_logging()
    report = asyncio.run(run(args.account_id, args.workspace_ids))
    for workspace_id, error in report.failed.items():
        logger.error("Workspace %s not assigned: %s", workspace_id, error)
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())

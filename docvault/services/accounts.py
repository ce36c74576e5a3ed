"""
Account Workspace Assignment

Grants a newly created account access to several workspaces at once.
Assignments are independent: they run concurrently, each in its own
session, and one failure never rolls back its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.repositories.access import AccessRepository

logger = logging.getLogger(__name__)


@dataclass
class AssignmentReport:
    """Outcome of a best-effort multi-workspace assignment."""

    assigned: list[uuid.UUID] = field(default_factory=list)
    failed: dict[uuid.UUID, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


async def assign_workspaces(
    session_factory: async_sessionmaker[AsyncSession],
    account_id: uuid.UUID,
    workspace_ids: list[uuid.UUID],
    repository: AccessRepository | None = None,
) -> AssignmentReport:
    """
    Insert one ``account_workspaces`` row per workspace, concurrently.

    Returns:
        Report listing the assigned workspaces and the error message of
        every assignment that failed.
    """
    repository = repository or AccessRepository()
    unique_ids = list(dict.fromkeys(workspace_ids))

    async def _assign(workspace_id: uuid.UUID) -> None:
        # AsyncSession is not safe for concurrent use: one per task
        async with session_factory() as session:
            await repository.add_account_workspace(session, account_id, workspace_id)

    results = await asyncio.gather(
        *(_assign(ws) for ws in unique_ids),
        return_exceptions=True,
    )

    report = AssignmentReport()
    for workspace_id, result in zip(unique_ids, results):
        if isinstance(result, Exception):
            logger.error(
                "Failed to assign workspace %s to account %s: %s",
                workspace_id,
                account_id,
                result,
            )
            report.failed[workspace_id] = str(result)
        else:
            report.assigned.append(workspace_id)

    logger.info(
        "Assigned %d/%d workspaces to account %s",
        len(report.assigned),
        len(unique_ids),
        account_id,
    )
    return report

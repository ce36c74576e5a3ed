"""
Stale File Reaper

Deletes documents left mid-ingestion, typically by a process crash between
two ingestion steps. Documents resting in ``path_updated`` (uploaded
without processing) are left alone. Compensation already covers
handled failures; this covers the rest.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import DocVaultError
from docvault.repositories.files import FileRepository
from docvault.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=1)


async def reap_stale_files(
    session: AsyncSession,
    files: FileRepository,
    storage: ObjectStorage,
    max_age: timedelta = DEFAULT_MAX_AGE,
    *,
    dry_run: bool = False,
    now: datetime | None = None,
) -> list[str]:
    """
    Remove stale documents together with their storage objects.

    Args:
        session: Active async database session.
        files: File repository.
        storage: Raw object store (the reaper acts as the system, not as
            a workspace member, so it bypasses the access gate).
        max_age: Only documents created longer ago than this are touched.
        dry_run: Report what would be deleted without deleting.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Ids of the documents deleted (or that would be).
    """
    cutoff = (now or datetime.now(timezone.utc)) - max_age
    stale = await files.find_stale_files(session, cutoff)

    reaped: list[str] = []
    for file in stale:
        file_id, path, status = file.id, file.file_path, file.status
        logger.info("Stale file %s (status=%s, path=%s)", file_id, status, path or "-")
        if not dry_run:
            if path:
                try:
                    await storage.delete(path)
                except DocVaultError:
                    logger.exception("Could not remove object %s; keeping row %s", path, file_id)
                    continue
            await files.delete_file(session, file_id)
        reaped.append(str(file_id))

    logger.info(
        "%s %d stale files older than %s",
        "Found" if dry_run else "Reaped",
        len(reaped),
        cutoff.isoformat(),
    )
    return reaped

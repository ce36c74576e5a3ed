"""Stale file reaper tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from conftest import USER_ID, WORKSPACE_ID, FakeFileRepository, MemoryStorage

from docvault.models.enums import FileStatus
from docvault.repositories.files import FileRepository
from docvault.services.cleanup import reap_stale_files

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


async def _add(
    repo: FakeFileRepository,
    storage: MemoryStorage,
    status: FileStatus,
    age: timedelta,
    name: str,
):
    path = f"{WORKSPACE_ID}/{name}"
    file = await repo.create(
        None,
        {
            "user_id": USER_ID,
            "name": name,
            "type": "text/plain",
            "size": 1,
            "status": status.value,
        },
    )
    file.file_path = path
    file.created_at = NOW - age
    storage.objects[path] = b"x"
    return file


@pytest.mark.asyncio
async def test_reaps_old_non_terminal_files(
    file_repo: FakeFileRepository,
    memory_storage: MemoryStorage,
    session,  # noqa: ANN001
) -> None:
    stuck = await _add(file_repo, memory_storage, FileStatus.UPLOADED, timedelta(hours=3), "stuck.txt")
    fresh = await _add(file_repo, memory_storage, FileStatus.UPLOADED, timedelta(minutes=5), "fresh.txt")
    ready = await _add(file_repo, memory_storage, FileStatus.READY, timedelta(days=2), "ready.txt")

    reaped = await reap_stale_files(session, file_repo, memory_storage, now=NOW)  # type: ignore[arg-type]

    assert reaped == [str(stuck.id)]
    assert set(file_repo.files) == {fresh.id, ready.id}
    assert stuck.file_path not in memory_storage.objects


@pytest.mark.asyncio
async def test_dry_run_deletes_nothing(
    file_repo: FakeFileRepository,
    memory_storage: MemoryStorage,
    session,  # noqa: ANN001
) -> None:
    stuck = await _add(file_repo, memory_storage, FileStatus.PROCESSED, timedelta(hours=2), "a.txt")

    reaped = await reap_stale_files(
        session, file_repo, memory_storage, dry_run=True, now=NOW  # type: ignore[arg-type]
    )

    assert reaped == [str(stuck.id)]
    assert stuck.id in file_repo.files
    assert stuck.file_path in memory_storage.objects


@pytest.mark.asyncio
async def test_upload_awaiting_processing_is_kept(
    file_repo: FakeFileRepository,
    memory_storage: MemoryStorage,
    session,  # noqa: ANN001
) -> None:
    parked = await _add(
        file_repo, memory_storage, FileStatus.PATH_UPDATED, timedelta(days=3), "later.txt"
    )

    assert await reap_stale_files(session, file_repo, memory_storage, now=NOW) == []  # type: ignore[arg-type]
    assert parked.id in file_repo.files
    assert parked.file_path in memory_storage.objects


@pytest.mark.asyncio
async def test_stale_query_skips_resting_states(session) -> None:  # noqa: ANN001
    await FileRepository().find_stale_files(session, NOW)

    stmt = session.execute.call_args.args[0]
    excluded = [
        value
        for value in stmt.compile().params.values()
        if isinstance(value, (list, tuple, set, frozenset))
    ]
    assert excluded
    assert set(excluded[0]) == {
        FileStatus.PATH_UPDATED.value,
        FileStatus.READY.value,
        FileStatus.FAILED.value,
    }

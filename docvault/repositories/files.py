"""
File Repository

Data access layer for documents, their workspace associations and their
chunks. Provides the two provider-specific similarity search entry points
via pgvector cosine distance.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import ProviderMismatchError
from docvault.models.enums import EmbeddingsProvider, FileStatus
from docvault.models.orm import (
    LOCAL_EMBEDDING_DIMENSION,
    OPENAI_EMBEDDING_DIMENSION,
    FileItemRecord,
    FileRecord,
    FileWorkspaceRecord,
)
from docvault.models.schemas import Embedding, RetrievedChunk
from docvault.repositories.base import BaseRepository, database_errors

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: frozenset[str] = frozenset(
    {FileStatus.READY.value, FileStatus.FAILED.value}
)

# Uploads made without processing wait in path_updated until a client indexes them
RESTING_STATUSES: frozenset[str] = TERMINAL_STATUSES | {FileStatus.PATH_UPDATED.value}


class FileRepository(BaseRepository[FileRecord]):
    """
    Repository for file, file-workspace and file-item persistence.

    Every write commits on its own: the ingestion steps are deliberately
    not wrapped in one transaction, compensation happens in the
    orchestrator. Deleting a file row cascades (database-side) to its
    associations and chunks.
    """

    def __init__(self) -> None:
        super().__init__(FileRecord)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def delete_file(self, session: AsyncSession, file_id: uuid.UUID) -> None:
        """Delete a file row; associations and chunks go with it."""
        with database_errors("Delete of files"):
            await session.execute(delete(FileRecord).where(FileRecord.id == file_id))
            await session.commit()
        logger.info("Deleted file row %s", file_id)

    async def set_status(
        self,
        session: AsyncSession,
        file: FileRecord,
        status: FileStatus,
    ) -> FileRecord:
        """Persist a lifecycle state on the row."""
        return await self.update(session, file, {"status": status.value})

    async def find_stale_files(
        self,
        session: AsyncSession,
        created_before: datetime,
    ) -> Sequence[FileRecord]:
        """Files stuck mid-ingestion (not resting) since before the cutoff."""
        stmt = (
            select(FileRecord)
            .where(FileRecord.status.notin_(RESTING_STATUSES))
            .where(FileRecord.created_at < created_before)
            .order_by(FileRecord.created_at)
        )
        with database_errors("Stale file scan"):
            result = await session.execute(stmt)
            return result.scalars().all()

    # ------------------------------------------------------------------
    # Workspace associations
    # ------------------------------------------------------------------

    async def create_file_workspace(
        self,
        session: AsyncSession,
        *,
        file_id: uuid.UUID,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> FileWorkspaceRecord:
        record = FileWorkspaceRecord(
            file_id=file_id,
            workspace_id=workspace_id,
            user_id=user_id,
        )
        with database_errors("Insert into file_workspaces"):
            session.add(record)
            await session.commit()
        return record

    async def delete_file_workspace(
        self,
        session: AsyncSession,
        *,
        file_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> None:
        stmt = delete(FileWorkspaceRecord).where(
            FileWorkspaceRecord.file_id == file_id,
            FileWorkspaceRecord.workspace_id == workspace_id,
        )
        with database_errors("Delete of file_workspaces"):
            await session.execute(stmt)
            await session.commit()

    async def get_workspace_files(
        self,
        session: AsyncSession,
        workspace_id: uuid.UUID,
    ) -> Sequence[FileRecord]:
        """All files associated with a workspace, newest first."""
        stmt = (
            select(FileRecord)
            .join(FileWorkspaceRecord, FileWorkspaceRecord.file_id == FileRecord.id)
            .where(FileWorkspaceRecord.workspace_id == workspace_id)
            .order_by(FileRecord.created_at.desc())
        )
        with database_errors("Workspace file listing"):
            result = await session.execute(stmt)
            return result.scalars().all()

    async def get_file_workspace_ids(
        self,
        session: AsyncSession,
        file_ids: Sequence[uuid.UUID],
    ) -> dict[uuid.UUID, set[uuid.UUID]]:
        """Map each file id to the workspaces it is associated with."""
        stmt = select(FileWorkspaceRecord.file_id, FileWorkspaceRecord.workspace_id).where(
            FileWorkspaceRecord.file_id.in_(list(file_ids))
        )
        with database_errors("File workspace lookup"):
            result = await session.execute(stmt)
            rows = result.all()

        mapping: dict[uuid.UUID, set[uuid.UUID]] = {fid: set() for fid in file_ids}
        for file_id, workspace_id in rows:
            mapping.setdefault(file_id, set()).add(workspace_id)
        return mapping

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def create_file_items(
        self,
        session: AsyncSession,
        items: list[FileItemRecord],
    ) -> None:
        """Bulk insert chunk rows in one commit."""
        with database_errors("Insert into file_items"):
            session.add_all(items)
            await session.commit()
        logger.info("Saved %d file items", len(items))

    async def delete_file_items(self, session: AsyncSession, file_id: uuid.UUID) -> None:
        """Drop every chunk of a file (before re-processing it)."""
        with database_errors("Delete of file_items"):
            await session.execute(delete(FileItemRecord).where(FileItemRecord.file_id == file_id))
            await session.commit()

    async def get_file_items(
        self,
        session: AsyncSession,
        file_id: uuid.UUID,
    ) -> Sequence[FileItemRecord]:
        stmt = select(FileItemRecord).where(FileItemRecord.file_id == file_id)
        with database_errors("Select from file_items"):
            result = await session.execute(stmt)
            return result.scalars().all()

    # ------------------------------------------------------------------
    # Similarity search
    # ------------------------------------------------------------------

    async def match_file_items(
        self,
        session: AsyncSession,
        query: Embedding,
        match_count: int,
        file_ids: Sequence[uuid.UUID],
    ) -> list[RetrievedChunk]:
        """Dispatch to the search entry point of the query's provider."""
        if query.provider is EmbeddingsProvider.OPENAI:
            return await self.match_file_items_openai(session, query, match_count, file_ids)
        return await self.match_file_items_local(session, query, match_count, file_ids)

    async def match_file_items_openai(
        self,
        session: AsyncSession,
        query: Embedding,
        match_count: int,
        file_ids: Sequence[uuid.UUID],
    ) -> list[RetrievedChunk]:
        """Cosine search over ``openai_embedding`` (1536 dims)."""
        _require_provider(query, EmbeddingsProvider.OPENAI, OPENAI_EMBEDDING_DIMENSION)
        return await self._match(
            session, FileItemRecord.openai_embedding, query, match_count, file_ids
        )

    async def match_file_items_local(
        self,
        session: AsyncSession,
        query: Embedding,
        match_count: int,
        file_ids: Sequence[uuid.UUID],
    ) -> list[RetrievedChunk]:
        """Cosine search over ``local_embedding`` (384 dims)."""
        _require_provider(query, EmbeddingsProvider.LOCAL, LOCAL_EMBEDDING_DIMENSION)
        return await self._match(
            session, FileItemRecord.local_embedding, query, match_count, file_ids
        )

    async def _match(
        self,
        session: AsyncSession,
        column,  # noqa: ANN001
        query: Embedding,
        match_count: int,
        file_ids: Sequence[uuid.UUID],
    ) -> list[RetrievedChunk]:
        """
        Nearest neighbours of ``query`` within ``file_ids``.

        The cosine distance is converted to a similarity score:
        ``similarity = 1 - distance`` (higher = more similar).
        """
        distance = column.cosine_distance(query.vector).label("distance")
        stmt = (
            select(FileItemRecord, distance)
            .where(column.isnot(None))
            .where(FileItemRecord.file_id.in_(list(file_ids)))
            .order_by(distance)
            .limit(match_count)
        )
        with database_errors(f"match_file_items_{query.provider.value}"):
            result = await session.execute(stmt)
            rows = result.all()

        return [
            RetrievedChunk(
                id=item.id,
                file_id=item.file_id,
                content=item.content,
                tokens=item.tokens,
                similarity=1.0 - float(dist),
            )
            for item, dist in rows
        ]


def _require_provider(
    query: Embedding,
    provider: EmbeddingsProvider,
    dimension: int,
) -> None:
    if query.provider is not provider:
        raise ProviderMismatchError(
            f"{query.provider.value} embedding passed to the {provider.value} search",
            provider_name=provider.value,
        )
    if query.dimension != dimension:
        raise ProviderMismatchError(
            f"Expected a {dimension}-dim {provider.value} embedding, "
            f"got {query.dimension}",
            provider_name=provider.value,
        )

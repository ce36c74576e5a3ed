"""
Ingestion Orchestrator

Coordinates the document lifecycle: access check → name sanitization →
file row → workspace association → object upload → storage path →
load / chunk / embed / persist chunks → token total.

Steps are not wrapped in one transaction. Handled failures trigger
compensating deletes so that no document is left half-built:

    - association insert fails      → delete the file row
    - upload fails                  → delete the file row
    - processing fails (any reason) → delete the storage object and the
      file row (cascades to associations and chunks already written)

A process crash between steps can still leave a row in a non-terminal
state; ``scripts/cleanup_stale_files.py`` reaps those.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import DocVaultError, NotFoundError, ProcessingError
from docvault.models.enums import EmbeddingsProvider, FileStatus
from docvault.models.orm import FileItemRecord, FileRecord
from docvault.models.schemas import FileCreate, FileItemChunk, LoadedDocument
from docvault.repositories.access import AccessRepository
from docvault.repositories.files import FileRepository
from docvault.services.access import AccessGate
from docvault.services.chunking import TextChunker
from docvault.services.credentials import ProviderFactory, resolve_provider
from docvault.services.embeddings import EmbeddingProvider, build_embedding_provider
from docvault.services.filenames import file_extension, sanitize_filename
from docvault.services.lifecycle import DocumentLifecycle, LifecycleObserver
from docvault.services.loader import DocumentLoader
from docvault.services.storage import WorkspaceStorage, build_storage_path

logger = logging.getLogger(__name__)


class ProcessResult(NamedTuple):
    """Outcome of turning a stored document into chunks."""

    file_id: uuid.UUID
    chunks_count: int
    tokens: int


class FileIngestionService:
    """
    Orchestrates upload, processing and removal of documents.

    Every collaborator is injected, so tests can swap in fakes for the
    repositories, the object store and the embedding backend.

    Usage::

        service = FileIngestionService(files, access, gate, storage)
        file = await service.create_file(
            session, user_id,
            workspace_id=ws_id,
            file_in=FileCreate(name="Report.pdf", size=len(raw)),
            data=raw,
            original_filename="Report.pdf",
            provider=EmbeddingsProvider.LOCAL,
        )
    """

    def __init__(
        self,
        files: FileRepository,
        access: AccessRepository,
        gate: AccessGate,
        storage: WorkspaceStorage,
        loader: DocumentLoader | None = None,
        chunker: TextChunker | None = None,
        provider_factory: ProviderFactory = build_embedding_provider,
        observer: LifecycleObserver | None = None,
    ) -> None:
        self._files = files
        self._access = access
        self._gate = gate
        self._storage = storage
        self._loader = loader or DocumentLoader()
        self._chunker = chunker or TextChunker()
        self._provider_factory = provider_factory
        self._observer = observer

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def create_file(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        *,
        workspace_id: uuid.UUID,
        file_in: FileCreate,
        data: bytes,
        original_filename: str,
        provider: EmbeddingsProvider,
        process: bool = True,
    ) -> FileRecord:
        """
        Upload a document into a workspace and (by default) index it.

        Args:
            session: Active async database session.
            user_id: Acting identity, recorded as the owner.
            workspace_id: Target workspace; the caller must hold a grant.
            file_in: Requested name, description, MIME type and size.
            data: Raw file bytes.
            original_filename: Name of the uploaded file (its extension
                drives loading and survives name truncation).
            provider: Embedding backend used for every chunk.
            process: Stop at ``path_updated`` when False; the document can
                then be indexed later with ``process_file``.

        Returns:
            The file row, in state ``ready`` (or ``path_updated``).

        Raises:
            AuthorizationError: No grant on ``workspace_id`` (nothing written).
            ConfigurationError: Missing credential for ``provider``.
            SizeLimitError: ``data`` exceeds the upload ceiling.
            ProcessingError: Loading, chunking or embedding failed; the
                document has been removed again.
        """
        lifecycle = DocumentLifecycle(self._observer)

        # --- Step 1: Authorize before any side effect ---
        await self._gate.authorize(session, user_id, workspace_id)
        lifecycle.advance(FileStatus.ACCESS_CHECKED)

        embedder = None
        if process:
            embedder = await resolve_provider(
                session, self._access, user_id, provider, self._provider_factory
            )

        # --- Step 2: Sanitize name and reserve the storage path ---
        name = sanitize_filename(file_in.name, original_filename)
        self._storage.check_size(len(data))
        path = build_storage_path(workspace_id, name)
        lifecycle.advance(FileStatus.STORED, detail=path)

        # --- Step 3: File row ---
        file = await self._files.create(
            session,
            {
                "user_id": user_id,
                "name": name,
                "description": file_in.description,
                "type": file_in.type,
                "size": file_in.size,
                "status": FileStatus.ROW_CREATED.value,
            },
        )
        lifecycle.bind(file.id)
        lifecycle.advance(FileStatus.ROW_CREATED)

        # --- Step 4: Workspace association ---
        try:
            await self._files.create_file_workspace(
                session,
                file_id=file.id,
                workspace_id=workspace_id,
                user_id=user_id,
            )
        except DocVaultError as exc:
            await self._compensate(session, user_id, file, lifecycle, str(exc))
            raise
        await self._set_state(session, file, lifecycle, FileStatus.ASSOCIATED)

        # --- Step 5: Upload ---
        try:
            await self._storage.upload(session, user_id, path, data, file_in.type)
        except DocVaultError as exc:
            await self._compensate(session, user_id, file, lifecycle, str(exc))
            raise
        await self._set_state(session, file, lifecycle, FileStatus.UPLOADED)

        # --- Step 6: Storage path ---
        lifecycle.advance(FileStatus.PATH_UPDATED)
        file = await self._files.update(
            session,
            file,
            {"file_path": path, "status": FileStatus.PATH_UPDATED.value},
        )

        if embedder is None:
            return file

        # --- Steps 7-8: Process, all-or-nothing ---
        await self._process_blob(
            session,
            user_id,
            file,
            lifecycle,
            embedder,
            blob=data,
            extension=file_extension(original_filename) or file_extension(name),
        )
        return file

    # ------------------------------------------------------------------
    # Processing of already uploaded documents
    # ------------------------------------------------------------------

    async def process_file(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
        provider: EmbeddingsProvider,
    ) -> ProcessResult:
        """Download a stored document and index it."""
        file = await self._require_file(session, file_id)
        if not file.file_path:
            raise ProcessingError(f"File {file_id} has not been uploaded yet")

        await self._gate.authorize_path(session, user_id, file.file_path)
        embedder = await resolve_provider(
            session, self._access, user_id, provider, self._provider_factory
        )
        lifecycle = await self._restart(session, file)
        blob = await self._storage.download(session, user_id, file.file_path)
        return await self._process_blob(
            session,
            user_id,
            file,
            lifecycle,
            embedder,
            blob=blob,
            extension=file_extension(file.name),
        )

    async def process_text(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
        text: str,
        provider: EmbeddingsProvider,
        extension: str = "docx",
    ) -> ProcessResult:
        """Index text a client already extracted from a rich-text container."""
        file = await self._require_file(session, file_id)
        await self._authorize_file(session, user_id, file)
        embedder = await resolve_provider(
            session, self._access, user_id, provider, self._provider_factory
        )
        lifecycle = await self._restart(session, file)
        loaded = LoadedDocument(segments=[text], file_type=extension)
        try:
            chunks = self._chunk(loaded)
        except Exception as exc:
            await self._compensate(session, user_id, file, lifecycle, str(exc))
            if isinstance(exc, ProcessingError):
                raise
            raise ProcessingError(_error_message(exc)) from exc
        return await self._persist_chunks(session, user_id, file, lifecycle, embedder, chunks)

    # ------------------------------------------------------------------
    # Reads and removal
    # ------------------------------------------------------------------

    async def get_file(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
    ) -> FileRecord:
        file = await self._require_file(session, file_id)
        await self._authorize_file(session, user_id, file)
        return file

    async def get_signed_url(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
        ttl_seconds: int | None = None,
    ) -> str:
        """Time-limited download URL for a stored document."""
        file = await self._require_file(session, file_id)
        if not file.file_path:
            raise NotFoundError(f"File {file_id} has no stored object")
        return await self._storage.signed_url(session, user_id, file.file_path, ttl_seconds)

    async def list_workspace_files(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> Sequence[FileRecord]:
        await self._gate.authorize(session, user_id, workspace_id)
        return await self._files.get_workspace_files(session, workspace_id)

    async def delete_file(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
    ) -> None:
        """Remove the storage object, then the row (cascading to chunks)."""
        file = await self._require_file(session, file_id)
        if file.file_path:
            await self._storage.remove(session, user_id, file.file_path)
        else:
            await self._authorize_file(session, user_id, file)
        await self._files.delete_file(session, file.id)

    async def delete_file_workspace(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> None:
        """Detach a document from one workspace; the document itself stays."""
        await self._gate.authorize(session, user_id, workspace_id)
        await self._files.delete_file_workspace(
            session,
            file_id=file_id,
            workspace_id=workspace_id,
        )
        logger.info("Removed file %s from workspace %s", file_id, workspace_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _process_blob(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file: FileRecord,
        lifecycle: DocumentLifecycle,
        embedder: EmbeddingProvider,
        *,
        blob: bytes,
        extension: str,
    ) -> ProcessResult:
        try:
            loaded = await self._loader.load(blob, extension)
            chunks = self._chunk(loaded)
        except Exception as exc:
            await self._compensate(session, user_id, file, lifecycle, str(exc))
            if isinstance(exc, ProcessingError):
                raise
            raise ProcessingError(_error_message(exc)) from exc
        return await self._persist_chunks(session, user_id, file, lifecycle, embedder, chunks)

    def _chunk(self, loaded: LoadedDocument) -> list[FileItemChunk]:
        if loaded.prechunked:
            chunks = self._chunker.from_segments(loaded.segments)
        else:
            chunks = [c for segment in loaded.segments for c in self._chunker.split(segment)]
        if not chunks:
            raise ProcessingError("No extractable text in file")
        return chunks

    async def _persist_chunks(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file: FileRecord,
        lifecycle: DocumentLifecycle,
        embedder: EmbeddingProvider,
        chunks: list[FileItemChunk],
    ) -> ProcessResult:
        file_id = file.id
        try:
            embeddings = await embedder.embed([c.content for c in chunks])
            is_openai = embedder.provider is EmbeddingsProvider.OPENAI
            items = [
                FileItemRecord(
                    file_id=file_id,
                    user_id=user_id,
                    content=chunk.content,
                    tokens=chunk.tokens,
                    embeddings_provider=embedding.provider.value,
                    openai_embedding=embedding.vector if is_openai else None,
                    local_embedding=None if is_openai else embedding.vector,
                )
                for chunk, embedding in zip(chunks, embeddings)
            ]
            await self._files.create_file_items(session, items)
            await self._set_state(session, file, lifecycle, FileStatus.PROCESSED)

            total_tokens = sum(c.tokens for c in chunks)
            await self._files.update(
                session,
                file,
                {"tokens": total_tokens, "status": FileStatus.READY.value},
            )
            lifecycle.advance(FileStatus.READY)
        except Exception as exc:
            await self._compensate(session, user_id, file, lifecycle, str(exc))
            if isinstance(exc, ProcessingError):
                raise
            raise ProcessingError(_error_message(exc)) from exc

        logger.info(
            "Processed file %s: %d chunks, %d tokens (provider=%s)",
            file_id,
            len(chunks),
            total_tokens,
            embedder.provider.value,
        )
        return ProcessResult(file_id=file_id, chunks_count=len(chunks), tokens=total_tokens)

    async def _set_state(
        self,
        session: AsyncSession,
        file: FileRecord,
        lifecycle: DocumentLifecycle,
        status: FileStatus,
    ) -> None:
        lifecycle.advance(status)
        await self._files.set_status(session, file, status)

    async def _restart(self, session: AsyncSession, file: FileRecord) -> DocumentLifecycle:
        """Lifecycle for re-processing; existing chunks are dropped first."""
        lifecycle = DocumentLifecycle(
            self._observer,
            state=FileStatus(file.status),
            file_id=file.id,
        )
        if lifecycle.state is FileStatus.READY:
            await self._files.delete_file_items(session, file.id)
            await self._set_state(session, file, lifecycle, FileStatus.PATH_UPDATED)
        elif lifecycle.state is not FileStatus.PATH_UPDATED:
            raise ProcessingError(
                f"File {file.id} cannot be processed in state '{file.status}'"
            )
        return lifecycle

    async def _compensate(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file: FileRecord,
        lifecycle: DocumentLifecycle,
        reason: str,
    ) -> None:
        """Undo a half-built document: storage object first, then the row."""
        file_id = file.id
        path = file.file_path
        lifecycle.fail(reason)
        await session.rollback()
        if path:
            try:
                await self._storage.remove(session, user_id, path)
            except DocVaultError:
                logger.exception("Could not remove object %s of failed file %s", path, file_id)
        await self._files.delete_file(session, file_id)
        logger.warning("Removed failed file %s: %s", file_id, reason)

    async def _require_file(self, session: AsyncSession, file_id: uuid.UUID) -> FileRecord:
        file = await self._files.get_by_id(session, file_id)
        if file is None:
            raise NotFoundError(f"File {file_id} not found")
        return file

    async def _authorize_file(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file: FileRecord,
    ) -> None:
        if file.file_path:
            await self._gate.authorize_path(session, user_id, file.file_path)
            return
        mapping = await self._files.get_file_workspace_ids(session, [file.id])
        await self._gate.authorize_any(session, user_id, mapping.get(file.id, set()))


def _error_message(exc: Exception) -> str:
    message = exc.message if isinstance(exc, DocVaultError) else str(exc)
    return message or type(exc).__name__

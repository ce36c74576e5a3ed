"""
Retrieval Orchestrator

Answers a query with the most similar chunks of a set of documents:

    dedupe ids → resolve provider credential → check file access →
    embed query → provider-specific similarity search → sort

Either the full ranked result set is returned or an error is raised;
there is no partial result.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import AuthorizationError
from docvault.models.enums import EmbeddingsProvider
from docvault.models.schemas import RetrievedChunk
from docvault.repositories.access import AccessRepository
from docvault.repositories.files import FileRepository
from docvault.services.access import AccessGate
from docvault.services.credentials import ProviderFactory, resolve_provider
from docvault.services.embeddings import build_embedding_provider

logger = logging.getLogger(__name__)


def rank_by_similarity(chunks: Sequence[RetrievedChunk]) -> list[RetrievedChunk]:
    """Highest similarity first; ties keep the order they arrived in."""
    return sorted(chunks, key=lambda chunk: chunk.similarity, reverse=True)


class RetrievalService:
    """
    Semantic search scoped to a caller's documents.

    Usage::

        service = RetrievalService(files, access, gate)
        results = await service.retrieve(
            session, user_id, "what changed in Q3?",
            file_ids=[...], provider=EmbeddingsProvider.OPENAI, source_count=4,
        )
    """

    def __init__(
        self,
        files: FileRepository,
        access: AccessRepository,
        gate: AccessGate,
        provider_factory: ProviderFactory = build_embedding_provider,
    ) -> None:
        self._files = files
        self._access = access
        self._gate = gate
        self._provider_factory = provider_factory

    async def retrieve(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        query: str,
        file_ids: Sequence[uuid.UUID],
        provider: EmbeddingsProvider,
        source_count: int,
    ) -> list[RetrievedChunk]:
        """
        Rank the chunks of ``file_ids`` against ``query``.

        Args:
            session: Active async database session.
            user_id: Acting identity.
            query: Free-text query.
            file_ids: Documents to search; duplicates are ignored.
            provider: Embedding family the documents were indexed with.
            source_count: Maximum number of chunks to return.

        Returns:
            Chunks sorted by similarity, highest first.

        Raises:
            ConfigurationError: The hosted provider's credential is missing.
            AuthorizationError: A document is outside the caller's workspaces.
            ExternalServiceError: The embedding call or the search failed.
        """
        unique_ids = list(dict.fromkeys(file_ids))

        embedder = await resolve_provider(
            session, self._access, user_id, provider, self._provider_factory
        )
        if not unique_ids or source_count <= 0:
            return []

        await self._authorize_files(session, user_id, unique_ids)

        query_embedding = await embedder.embed_query(query)
        chunks = await self._files.match_file_items(
            session,
            query_embedding,
            source_count,
            unique_ids,
        )

        ranked = rank_by_similarity(chunks)
        logger.info(
            "Retrieved %d chunks from %d files (provider=%s, requested=%d)",
            len(ranked),
            len(unique_ids),
            provider.value,
            source_count,
        )
        return ranked

    async def _authorize_files(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        file_ids: list[uuid.UUID],
    ) -> None:
        """Every file must sit in at least one workspace the caller may reach."""
        workspaces_by_file = await self._files.get_file_workspace_ids(session, file_ids)
        for file_id in file_ids:
            try:
                await self._gate.authorize_any(
                    session, user_id, workspaces_by_file.get(file_id, set())
                )
            except AuthorizationError as exc:
                raise AuthorizationError(f"No access to file {file_id}") from exc

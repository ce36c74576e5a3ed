"""Resolution of a caller's embedding provider from their profile."""

from __future__ import annotations

import uuid
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import ConfigurationError
from docvault.models.enums import EmbeddingsProvider
from docvault.models.schemas import ProviderCredentials
from docvault.repositories.access import AccessRepository
from docvault.services.embeddings import EmbeddingProvider, build_embedding_provider

ProviderFactory = Callable[[EmbeddingsProvider, ProviderCredentials | None], EmbeddingProvider]


async def load_credentials(
    session: AsyncSession,
    repository: AccessRepository,
    user_id: uuid.UUID,
    provider: EmbeddingsProvider,
) -> ProviderCredentials | None:
    """Hosted-provider credentials of ``user_id``; None for the local model."""
    if provider is EmbeddingsProvider.LOCAL:
        return None
    profile = await repository.get_profile(session, user_id)
    if profile is None:
        raise ConfigurationError("Profile not found")
    return ProviderCredentials.model_validate(profile)


async def resolve_provider(
    session: AsyncSession,
    repository: AccessRepository,
    user_id: uuid.UUID,
    provider: EmbeddingsProvider,
    factory: ProviderFactory = build_embedding_provider,
) -> EmbeddingProvider:
    """
    Select the embedding backend for one operation.

    Raises ``ConfigurationError`` before any network call when the
    credential the hosted provider needs is missing.
    """
    credentials = await load_credentials(session, repository, user_id, provider)
    return factory(provider, credentials)

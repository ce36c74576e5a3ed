"""
Embedding Providers

Two interchangeable backends behind one ``embed`` capability:

    - ``OpenAIEmbeddingProvider``: hosted ``text-embedding-3-small``
      (1536 dims), either with a direct API key or through an Azure
      OpenAI deployment (different base URL, ``api-version`` query and
      ``api-key`` header).
    - ``LocalEmbeddingProvider``: in-process sentence-transformers model
      ``all-MiniLM-L6-v2`` (384 dims), no network and no credential.

A provider is selected once per operation by ``build_embedding_provider``
and threaded through unchanged. Every vector it returns is tagged with
its family so it can only reach the matching search entry point.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import openai
from openai import AsyncOpenAI

from docvault.core.config import settings
from docvault.core.errors import ConfigurationError, ExternalServiceError
from docvault.models.enums import EmbeddingsProvider
from docvault.models.orm import LOCAL_EMBEDDING_DIMENSION, OPENAI_EMBEDDING_DIMENSION
from docvault.models.schemas import Embedding, ProviderCredentials

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Converts text into provider-tagged vectors."""

    provider: ClassVar[EmbeddingsProvider]
    dimension: ClassVar[int]

    @abstractmethod
    async def _embed_vectors(self, texts: list[str]) -> list[list[float]]:
        """Raw vectors, one per input text, in input order."""

    async def embed(self, texts: list[str]) -> list[Embedding]:
        """Embed a batch of texts."""
        if not texts:
            return []
        vectors = await self._embed_vectors(texts)
        return [Embedding(provider=self.provider, vector=v) for v in vectors]

    async def embed_query(self, text: str) -> Embedding:
        """Embed a single query string."""
        results = await self.embed([text])
        return results[0]


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Hosted embeddings through the OpenAI SDK.

    Build with ``direct`` (API key + optional organization) or ``azure``
    (enterprise gateway). Both return the first result vector per input.
    """

    provider = EmbeddingsProvider.OPENAI
    dimension = OPENAI_EMBEDDING_DIMENSION

    def __init__(self, client: AsyncOpenAI, model: str | None = None) -> None:
        self._client = client
        self._model = model or settings.OPENAI_EMBEDDING_MODEL

    @classmethod
    def direct(
        cls,
        api_key: str,
        organization: str | None = None,
    ) -> OpenAIEmbeddingProvider:
        return cls(AsyncOpenAI(api_key=api_key, organization=organization or None))

    @classmethod
    def azure(
        cls,
        api_key: str,
        endpoint: str,
        deployment_id: str,
    ) -> OpenAIEmbeddingProvider:
        client = AsyncOpenAI(
            api_key=api_key,
            base_url=f"{endpoint.rstrip('/')}/openai/deployments/{deployment_id}",
            default_query={"api-version": settings.AZURE_OPENAI_API_VERSION},
            default_headers={"api-key": api_key},
        )
        return cls(client)

    async def _embed_vectors(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=texts,
            )
        except openai.APIError as exc:
            raise ExternalServiceError(
                f"Embedding request failed: {exc.message}",
                provider_name="openai",
            ) from exc

        logger.info("Generated %d OpenAI embeddings (model=%s)", len(texts), self._model)
        return [item.embedding for item in response.data]


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from a local sentence-transformers model.

    The model is loaded lazily on first use and cached as a class-level
    singleton. Inference is CPU-bound and runs in a worker thread.
    """

    provider = EmbeddingsProvider.LOCAL
    dimension = LOCAL_EMBEDDING_DIMENSION

    _model: ClassVar[Any] = None

    @classmethod
    def _get_model(cls) -> Any:
        """
        Get or lazily initialize the sentence-transformers model.

        The import is deferred so that ``sentence_transformers`` is not
        required at module-import time (keeps test collection fast).
        """
        if cls._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s ...", settings.LOCAL_EMBEDDING_MODEL)
            cls._model = SentenceTransformer(settings.LOCAL_EMBEDDING_MODEL)
            logger.info("Model loaded (dim=%d)", cls.dimension)
        return cls._model

    @classmethod
    def _encode_sync(cls, texts: list[str]) -> list[list[float]]:
        """Synchronous batch encoding; always call via ``asyncio.to_thread``."""
        model = cls._get_model()
        embeddings = model.encode(texts, normalize_embeddings=True)
        # numpy ndarray -> native Python lists for pgvector compatibility
        result: list[list[float]] = embeddings.tolist()
        return result

    async def _embed_vectors(self, texts: list[str]) -> list[list[float]]:
        return await asyncio.to_thread(self._encode_sync, texts)

    @classmethod
    def reset(cls) -> None:
        """Release the model from memory."""
        cls._model = None
        logger.info("Local embedding model released")


def check_api_key(api_key: str | None, key_name: str) -> str:
    """Return the key, or raise if it is missing or blank."""
    if not api_key or not api_key.strip():
        raise ConfigurationError(f"{key_name} API Key not found", provider_name="openai")
    return api_key


def build_embedding_provider(
    provider: EmbeddingsProvider,
    credentials: ProviderCredentials | None,
) -> EmbeddingProvider:
    """
    Select the embedding backend for one operation.

    Credentials are checked here, before any network call.

    Raises:
        ConfigurationError: The hosted provider is requested without the
            credential its authentication mode needs.
    """
    if provider is EmbeddingsProvider.LOCAL:
        return LocalEmbeddingProvider()

    credentials = credentials or ProviderCredentials()
    if credentials.use_azure_openai:
        api_key = check_api_key(credentials.azure_openai_api_key, "Azure OpenAI")
        if not credentials.azure_openai_endpoint or not credentials.azure_openai_embeddings_id:
            raise ConfigurationError(
                "Azure OpenAI endpoint and embeddings deployment id are required",
                provider_name="azure-openai",
            )
        return OpenAIEmbeddingProvider.azure(
            api_key,
            credentials.azure_openai_endpoint,
            credentials.azure_openai_embeddings_id,
        )

    api_key = check_api_key(credentials.openai_api_key, "OpenAI")
    return OpenAIEmbeddingProvider.direct(api_key, credentials.openai_organization_id)

"""
DocVault Domain Schemas

Pydantic models for the data flowing between the loader, chunker,
embedding providers, repositories and orchestrators.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docvault.models.enums import EmbeddingsProvider


class FileCreate(BaseModel):
    """Row values supplied by the uploader, before name sanitization."""

    name: str = Field(min_length=1, description="Requested display name")
    description: str = Field(default="", description="Free-form description")
    type: str = Field(default="application/octet-stream", description="MIME type")
    size: int = Field(ge=0, description="Byte size of the raw upload")


class LoadedDocument(BaseModel):
    """
    Text extracted from a stored document.

    When ``prechunked`` is True every segment is already one chunk
    (social-media post collections) and the chunker is bypassed.
    Otherwise ``segments`` holds a single string to be split.
    """

    segments: list[str]
    prechunked: bool = False
    file_type: str


class FileItemChunk(BaseModel):
    """A piece of document text with its tokenizer token count."""

    content: str = Field(min_length=1)
    tokens: int = Field(ge=0)


class Embedding(BaseModel):
    """
    A vector tagged with the provider family that produced it.

    The search repository dispatches on ``provider`` and refuses to
    send a vector to the entry point of another family.
    """

    model_config = ConfigDict(frozen=True)

    provider: EmbeddingsProvider
    vector: list[float]

    @property
    def dimension(self) -> int:
        return len(self.vector)


class ProviderCredentials(BaseModel):
    """Hosted-provider credentials resolved from the caller's profile."""

    model_config = ConfigDict(from_attributes=True)

    openai_api_key: str | None = None
    openai_organization_id: str | None = None
    use_azure_openai: bool = False
    azure_openai_api_key: str | None = None
    azure_openai_endpoint: str | None = None
    azure_openai_embeddings_id: str | None = None


class WorkspaceAccessGrant(BaseModel):
    """Proof that an identity may reach a workspace."""

    user_id: UUID
    workspace_id: UUID
    role: str
    account_id: UUID | None = Field(
        default=None,
        description="Account the grant flows through (None for direct ownership)",
    )


class RetrievedChunk(BaseModel):
    """A chunk returned by a similarity search entry point."""

    id: UUID
    file_id: UUID
    content: str
    tokens: int
    similarity: float = Field(description="Cosine similarity (higher = more similar)")

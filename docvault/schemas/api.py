"""
DocVault API Schemas

Pydantic models for the HTTP request/response cycle. The retrieval
routes speak the camelCase field names the chat client sends.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docvault.models.enums import EmbeddingsProvider
from docvault.models.schemas import RetrievedChunk


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RetrieveRequest(_CamelModel):
    """Request body for chunk retrieval."""

    user_input: str = Field(
        ...,
        alias="userInput",
        min_length=1,
        description="Natural language query",
    )
    file_ids: list[UUID] = Field(
        default_factory=list,
        alias="fileIds",
        description="Documents to search (duplicates ignored)",
    )
    embeddings_provider: EmbeddingsProvider = Field(
        ...,
        alias="embeddingsProvider",
        description="Provider the documents were indexed with",
    )
    source_count: int = Field(
        default=4,
        alias="sourceCount",
        ge=1,
        le=100,
        description="Maximum number of chunks to return",
    )


class RetrieveResponse(BaseModel):
    """Chunks ranked by similarity, highest first."""

    results: list[RetrievedChunk]


class ProcessTextRequest(_CamelModel):
    """Request body for indexing text extracted client-side from a DOCX."""

    text: str = Field(..., min_length=1, description="Extracted document text")
    file_id: UUID = Field(..., alias="fileId")
    embeddings_provider: EmbeddingsProvider = Field(..., alias="embeddingsProvider")
    file_extension: str = Field(default="docx", alias="fileExtension")


class ProcessResponse(BaseModel):
    """Outcome of indexing a stored document."""

    file_id: UUID
    chunks_count: int = Field(description="Number of chunks written")
    tokens: int = Field(description="Total tokens across all chunks")
    message: str = "Embed Successful"


class FileResponse(BaseModel):
    """A stored document as returned to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    description: str
    type: str
    size: int
    tokens: int
    file_path: str
    status: str
    created_at: datetime | None = None


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int = Field(description="Seconds until the URL stops working")

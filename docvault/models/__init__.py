"""Models package: Pydantic schemas and SQLAlchemy ORM for DocVault."""

from docvault.models.access import (
    AccountMemberRecord,
    AccountRecord,
    AccountWorkspaceRecord,
    ProfileRecord,
    WorkspaceRecord,
)
from docvault.models.base import Base, TimestampMixin
from docvault.models.enums import EmbeddingsProvider, FileStatus
from docvault.models.orm import (
    LOCAL_EMBEDDING_DIMENSION,
    OPENAI_EMBEDDING_DIMENSION,
    FileItemRecord,
    FileRecord,
    FileWorkspaceRecord,
)
from docvault.models.schemas import (
    Embedding,
    FileCreate,
    FileItemChunk,
    LoadedDocument,
    ProviderCredentials,
    RetrievedChunk,
    WorkspaceAccessGrant,
)

__all__ = [
    # Enums
    "EmbeddingsProvider",
    "FileStatus",
    # Pydantic schemas (pipeline)
    "Embedding",
    "FileCreate",
    "FileItemChunk",
    "LoadedDocument",
    "ProviderCredentials",
    "RetrievedChunk",
    "WorkspaceAccessGrant",
    # SQLAlchemy ORM (persistence layer)
    "Base",
    "TimestampMixin",
    "FileRecord",
    "FileItemRecord",
    "FileWorkspaceRecord",
    "WorkspaceRecord",
    "AccountRecord",
    "AccountMemberRecord",
    "AccountWorkspaceRecord",
    "ProfileRecord",
    "LOCAL_EMBEDDING_DIMENSION",
    "OPENAI_EMBEDDING_DIMENSION",
]

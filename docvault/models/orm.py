"""
DocVault File Database Models

SQLAlchemy 2.0 ORM models for the document and chunk storage layer.
Uses pgvector for vector similarity search on chunk embeddings.

Tables:
    files           - Uploaded documents and their lifecycle state.
    file_items      - Document chunks, one embedding column per provider.
    file_workspaces - Association of a document with a workspace.
"""

from __future__ import annotations

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docvault.models.base import Base, TimestampMixin
from docvault.models.enums import EmbeddingsProvider, FileStatus

# text-embedding-3-small
OPENAI_EMBEDDING_DIMENSION: int = 1536
# all-MiniLM-L6-v2
LOCAL_EMBEDDING_DIMENSION: int = 384


class FileRecord(Base, TimestampMixin):
    """
    Persistent storage for uploaded documents.

    Attributes:
        id: UUID primary key (generated Python-side).
        user_id: Owning identity.
        name: Sanitized display name (max 100 chars, lower case).
        description: Free-form description supplied on upload.
        type: Declared MIME type.
        size: Byte size of the raw upload.
        tokens: Total token count across all chunks (0 until processed).
        file_path: Object storage path, ``{workspace_id}/{name}``.
        status: Lifecycle state (see ``FileStatus``).
        items: Related FileItemRecord instances (cascade delete).
    """

    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(200), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    sharing: Mapped[str] = mapped_column(String(32), nullable=False, default="private")
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=FileStatus.ROW_CREATED.value,
        index=True,
    )

    items: Mapped[list[FileItemRecord]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    workspaces: Mapped[list[FileWorkspaceRecord]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<FileRecord(id={self.id!s:.8}, name='{self.name}', status={self.status})>"


class FileItemRecord(Base, TimestampMixin):
    """
    One chunk of a document with its embedding.

    Exactly one of ``openai_embedding`` / ``local_embedding`` is set,
    matching ``embeddings_provider``. The similarity search entry point
    of each provider only reads its own column.
    """

    __tablename__ = "file_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    embeddings_provider: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=EmbeddingsProvider.OPENAI.value,
    )
    openai_embedding: Mapped[list[float] | None] = mapped_column(
        Vector(OPENAI_EMBEDDING_DIMENSION),
        nullable=True,
    )
    local_embedding: Mapped[list[float] | None] = mapped_column(
        Vector(LOCAL_EMBEDDING_DIMENSION),
        nullable=True,
    )

    file: Mapped[FileRecord] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<FileItemRecord(id={self.id!s:.8}, file={self.file_id!s:.8}, "
            f"provider={self.embeddings_provider})>"
        )


class FileWorkspaceRecord(Base, TimestampMixin):
    """Association between a document and a workspace."""

    __tablename__ = "file_workspaces"

    file_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("files.id", ondelete="CASCADE"),
        primary_key=True,
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    file: Mapped[FileRecord] = relationship(back_populates="workspaces")

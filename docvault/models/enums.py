"""Enumerations shared by the ORM, the API schemas and the services."""

from __future__ import annotations

from enum import Enum


class EmbeddingsProvider(str, Enum):
    """Embedding backend family. Vectors of different families are never compared."""

    OPENAI = "openai"
    LOCAL = "local"


class FileStatus(str, Enum):
    """
    Lifecycle state of an uploaded document.

    ``requested`` through ``stored`` exist before the row does; from
    ``row_created`` on the state is persisted on ``files.status``.
    """

    REQUESTED = "requested"
    ACCESS_CHECKED = "access_checked"
    STORED = "stored"  # name sanitized, storage path reserved
    ROW_CREATED = "row_created"
    ASSOCIATED = "associated"
    UPLOADED = "uploaded"
    PATH_UPDATED = "path_updated"
    PROCESSED = "processed"
    READY = "ready"
    FAILED = "failed"

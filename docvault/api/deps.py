"""
API Dependencies

FastAPI dependency providers for the acting identity and the services.
Each request gets its own service graph; the object store is shared.
"""

from __future__ import annotations

import uuid
from functools import lru_cache

from fastapi import Depends, Header

from docvault.core.errors import AuthenticationError
from docvault.repositories.access import AccessRepository
from docvault.repositories.files import FileRepository
from docvault.services.access import AccessGate
from docvault.services.ingestion import FileIngestionService
from docvault.services.retrieval import RetrievalService
from docvault.services.storage import LocalObjectStorage, WorkspaceStorage


def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> uuid.UUID:
    """Identity forwarded by the authenticating gateway."""
    if not x_user_id:
        raise AuthenticationError()
    try:
        return uuid.UUID(x_user_id)
    except ValueError as exc:
        raise AuthenticationError() from exc


@lru_cache(maxsize=1)
def get_object_storage() -> LocalObjectStorage:
    return LocalObjectStorage()


def get_access_repository() -> AccessRepository:
    return AccessRepository()


def get_file_repository() -> FileRepository:
    return FileRepository()


def get_access_gate(
    access: AccessRepository = Depends(get_access_repository),
) -> AccessGate:
    return AccessGate(access)


def get_workspace_storage(
    storage: LocalObjectStorage = Depends(get_object_storage),
    gate: AccessGate = Depends(get_access_gate),
) -> WorkspaceStorage:
    return WorkspaceStorage(storage, gate)


def get_ingestion_service(
    files: FileRepository = Depends(get_file_repository),
    access: AccessRepository = Depends(get_access_repository),
    gate: AccessGate = Depends(get_access_gate),
    storage: WorkspaceStorage = Depends(get_workspace_storage),
) -> FileIngestionService:
    return FileIngestionService(files, access, gate, storage)


def get_retrieval_service(
    files: FileRepository = Depends(get_file_repository),
    access: AccessRepository = Depends(get_access_repository),
    gate: AccessGate = Depends(get_access_gate),
) -> RetrievalService:
    return RetrievalService(files, access, gate)

"""
Pytest Configuration and Fixtures

In-memory stand-ins for the database repositories, the object store and
the embedding backends, so that the orchestrators run offline. Live
tests against the Docker stack live under ``tests/integration`` and are
marked ``live``.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults, MUST be before any docvault imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "docvault",
    "POSTGRES_PASSWORD": "docvault_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "docvault_db",
    "STORAGE_SIGNING_SECRET": "test-secret",
    "PRELOAD_LOCAL_MODEL": "false",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import uuid  # noqa: E402
from collections.abc import Sequence  # noqa: E402
from datetime import datetime  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from docvault.core.errors import ExternalServiceError, NotFoundError  # noqa: E402
from docvault.models.enums import EmbeddingsProvider, FileStatus  # noqa: E402
from docvault.models.orm import (  # noqa: E402
    LOCAL_EMBEDDING_DIMENSION,
    OPENAI_EMBEDDING_DIMENSION,
    FileItemRecord,
    FileRecord,
    FileWorkspaceRecord,
)
from docvault.models.schemas import (  # noqa: E402
    Embedding,
    RetrievedChunk,
    WorkspaceAccessGrant,
)
from docvault.repositories.files import RESTING_STATUSES  # noqa: E402
from docvault.services.access import AccessGate  # noqa: E402
from docvault.services.chunking import TextChunker  # noqa: E402
from docvault.services.embeddings import EmbeddingProvider  # noqa: E402
from docvault.services.ingestion import FileIngestionService  # noqa: E402
from docvault.services.retrieval import RetrievalService  # noqa: E402
from docvault.services.storage import ObjectStorage, WorkspaceStorage  # noqa: E402

USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b2")
WORKSPACE_ID = uuid.UUID("00000000-0000-0000-0000-00000000c0de")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class CharCounter:
    """Token counter where one character is one token (deterministic, offline)."""

    def encode(self, text: str) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)

    def count(self, text: str) -> int:
        return len(text)


class FakeFileRepository:
    """Dict-backed replacement for ``FileRepository``."""

    def __init__(self) -> None:
        self.files: dict[uuid.UUID, FileRecord] = {}
        self.associations: dict[tuple[uuid.UUID, uuid.UUID], FileWorkspaceRecord] = {}
        self.items: list[FileItemRecord] = []
        self.search_results: list[RetrievedChunk] = []
        self.search_calls: list[tuple[Embedding, int, list[uuid.UUID]]] = []
        self.fail_association = False
        self.fail_items = False

    async def create(self, session: Any, obj_in: dict[str, Any]) -> FileRecord:
        record = FileRecord(
            id=uuid.uuid4(),
            tokens=0,
            file_path="",
            sharing="private",
            **obj_in,
        )
        self.files[record.id] = record
        return record

    async def get_by_id(self, session: Any, id: uuid.UUID) -> FileRecord | None:
        return self.files.get(id)

    async def update(self, session: Any, db_obj: FileRecord, obj_in: dict[str, Any]) -> FileRecord:
        for field, value in obj_in.items():
            setattr(db_obj, field, value)
        return db_obj

    async def set_status(self, session: Any, file: FileRecord, status: FileStatus) -> FileRecord:
        return await self.update(session, file, {"status": status.value})

    async def delete_file(self, session: Any, file_id: uuid.UUID) -> None:
        self.files.pop(file_id, None)
        self.associations = {k: v for k, v in self.associations.items() if k[0] != file_id}
        self.items = [i for i in self.items if i.file_id != file_id]

    async def find_stale_files(self, session: Any, created_before: datetime) -> list[FileRecord]:
        return [
            f
            for f in self.files.values()
            if f.status not in RESTING_STATUSES
            and f.created_at is not None
            and f.created_at < created_before
        ]

    async def create_file_workspace(
        self,
        session: Any,
        *,
        file_id: uuid.UUID,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> FileWorkspaceRecord:
        if self.fail_association:
            raise ExternalServiceError(
                "Insert into file_workspaces failed: connection reset",
                provider_name="postgres",
            )
        record = FileWorkspaceRecord(file_id=file_id, workspace_id=workspace_id, user_id=user_id)
        self.associations[(file_id, workspace_id)] = record
        return record

    async def delete_file_workspace(
        self,
        session: Any,
        *,
        file_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> None:
        self.associations.pop((file_id, workspace_id), None)

    async def get_workspace_files(self, session: Any, workspace_id: uuid.UUID) -> list[FileRecord]:
        return [self.files[fid] for fid, ws in self.associations if ws == workspace_id]

    async def get_file_workspace_ids(
        self,
        session: Any,
        file_ids: Sequence[uuid.UUID],
    ) -> dict[uuid.UUID, set[uuid.UUID]]:
        mapping: dict[uuid.UUID, set[uuid.UUID]] = {fid: set() for fid in file_ids}
        for fid, ws in self.associations:
            if fid in mapping:
                mapping[fid].add(ws)
        return mapping

    async def create_file_items(self, session: Any, items: list[FileItemRecord]) -> None:
        if self.fail_items:
            raise ExternalServiceError("Insert into file_items failed: disk full")
        self.items.extend(items)

    async def delete_file_items(self, session: Any, file_id: uuid.UUID) -> None:
        self.items = [i for i in self.items if i.file_id != file_id]

    async def match_file_items(
        self,
        session: Any,
        query: Embedding,
        match_count: int,
        file_ids: Sequence[uuid.UUID],
    ) -> list[RetrievedChunk]:
        self.search_calls.append((query, match_count, list(file_ids)))
        return list(self.search_results)


class FakeAccessRepository:
    """Grant and profile lookups from plain dicts."""

    def __init__(self) -> None:
        self.grants: dict[tuple[uuid.UUID, uuid.UUID], str] = {}
        self.profiles: dict[uuid.UUID, Any] = {}
        self.account_workspaces: list[tuple[uuid.UUID, uuid.UUID]] = []
        self.lookups = 0

    def grant(self, user_id: uuid.UUID, workspace_id: uuid.UUID, role: str = "owner") -> None:
        self.grants[(user_id, workspace_id)] = role

    async def find_grant(
        self,
        session: Any,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> WorkspaceAccessGrant | None:
        self.lookups += 1
        role = self.grants.get((user_id, workspace_id))
        if role is None:
            return None
        return WorkspaceAccessGrant(user_id=user_id, workspace_id=workspace_id, role=role)

    async def get_profile(self, session: Any, user_id: uuid.UUID) -> Any:
        return self.profiles.get(user_id)

    async def add_account_workspace(
        self,
        session: Any,
        account_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> None:
        self.account_workspaces.append((account_id, workspace_id))


class MemoryStorage(ObjectStorage):
    """Object store kept in a dict."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_put = False

    async def put(self, path: str, data: bytes, content_type: str | None = None) -> str:
        if self.fail_put:
            raise ExternalServiceError("Error uploading file: bucket unavailable")
        if path in self.objects:
            raise ExternalServiceError("The resource already exists", provider_name="storage")
        self.objects[path] = data
        return path

    async def get(self, path: str) -> bytes:
        if path not in self.objects:
            raise NotFoundError(f"Object not found: {path}")
        return self.objects[path]

    async def delete(self, path: str) -> None:
        self.objects.pop(path, None)

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        return f"memory://{path}?ttl={ttl_seconds}"


class FakeEmbeddingProvider(EmbeddingProvider):
    """Constant vectors of the right dimension for the chosen family."""

    def __init__(self, provider: EmbeddingsProvider = EmbeddingsProvider.LOCAL) -> None:
        self.provider = provider
        self.dimension = (
            LOCAL_EMBEDDING_DIMENSION
            if provider is EmbeddingsProvider.LOCAL
            else OPENAI_EMBEDDING_DIMENSION
        )
        self.calls: list[list[str]] = []
        self.error: Exception | None = None

    async def _embed_vectors(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [[0.1] * self.dimension for _ in texts]


class RecordingObserver:
    """Collects ``(from, to)`` pairs of every transition."""

    def __init__(self) -> None:
        self.transitions: list[tuple[FileStatus, FileStatus]] = []

    def on_transition(self, file_id, previous, current, detail=None) -> None:  # noqa: ANN001
        self.transitions.append((previous, current))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> AsyncMock:
    """Stand-in for an AsyncSession; the fakes never touch it."""
    mock = AsyncMock()
    mock.execute.return_value = MagicMock()
    return mock


@pytest.fixture
def file_repo() -> FakeFileRepository:
    return FakeFileRepository()


@pytest.fixture
def access_repo() -> FakeAccessRepository:
    repo = FakeAccessRepository()
    repo.grant(USER_ID, WORKSPACE_ID)
    return repo


@pytest.fixture
def gate(access_repo: FakeAccessRepository) -> AccessGate:
    return AccessGate(access_repo)  # type: ignore[arg-type]


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def workspace_storage(memory_storage: MemoryStorage, gate: AccessGate) -> WorkspaceStorage:
    return WorkspaceStorage(memory_storage, gate, size_limit=1_000, signed_url_ttl=3600)


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(EmbeddingsProvider.LOCAL)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def small_chunker() -> TextChunker:
    """Character-measured chunker with a small budget."""
    return TextChunker(chunk_size=50, chunk_overlap=10, counter=CharCounter())  # type: ignore[arg-type]


@pytest.fixture
def ingestion(
    file_repo: FakeFileRepository,
    access_repo: FakeAccessRepository,
    gate: AccessGate,
    workspace_storage: WorkspaceStorage,
    small_chunker: TextChunker,
    embedder: FakeEmbeddingProvider,
    observer: RecordingObserver,
) -> FileIngestionService:
    return FileIngestionService(
        file_repo,  # type: ignore[arg-type]
        access_repo,  # type: ignore[arg-type]
        gate,
        workspace_storage,
        chunker=small_chunker,
        provider_factory=lambda provider, credentials: embedder,
        observer=observer,
    )


@pytest.fixture
def retrieval(
    file_repo: FakeFileRepository,
    access_repo: FakeAccessRepository,
    gate: AccessGate,
    embedder: FakeEmbeddingProvider,
) -> RetrievalService:
    return RetrievalService(
        file_repo,  # type: ignore[arg-type]
        access_repo,  # type: ignore[arg-type]
        gate,
        provider_factory=lambda provider, credentials: embedder,
    )

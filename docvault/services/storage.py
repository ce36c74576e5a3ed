"""
Object Storage

Byte storage for uploaded documents, addressed by ``{workspace_id}/{name}``.

    - ``ObjectStorage``: the put / get / delete / signed-url contract.
    - ``LocalObjectStorage``: filesystem-backed implementation with
      HMAC-signed, expiring download URLs.
    - ``WorkspaceStorage``: the façade the orchestrators use. Every
      operation authorizes the caller against the path's workspace first
      and uploads enforce the byte ceiling before anything is written.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote, urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.config import settings
from docvault.core.errors import ExternalServiceError, NotFoundError, SizeLimitError
from docvault.services.access import AccessGate

logger = logging.getLogger(__name__)

SIGNED_URL_PREFIX = "/api/v1/storage"


def build_storage_path(workspace_id: uuid.UUID, name: str) -> str:
    return f"{workspace_id}/{name}"


class ObjectStorage(ABC):
    """Minimal object store contract."""

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Write ``data`` at a new ``path``; an existing object is never replaced."""

    @abstractmethod
    async def get(self, path: str) -> bytes:
        """Read the object at ``path``; ``NotFoundError`` if absent."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at ``path``; a missing object is not an error."""

    @abstractmethod
    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        """Time-limited download URL for ``path``."""


class LocalObjectStorage(ObjectStorage):
    """
    Object store rooted in a local directory.

    Blocking file I/O is offloaded to a thread pool via
    ``asyncio.to_thread``. Signed URLs point at the storage download
    route and carry ``expires`` plus an HMAC-SHA256 ``signature`` over
    ``"{path}:{expires}"``.

    Usage::

        storage = LocalObjectStorage()
        await storage.put("ws-id/report.pdf", raw)
        url = await storage.signed_url("ws-id/report.pdf", 3600)
    """

    def __init__(
        self,
        root: str | Path | None = None,
        secret: str | None = None,
    ) -> None:
        self._root = Path(root or settings.STORAGE_ROOT).resolve()
        self._secret = (secret or settings.STORAGE_SIGNING_SECRET).encode("utf-8")

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Object I/O
    # ------------------------------------------------------------------

    async def put(self, path: str, data: bytes, content_type: str | None = None) -> str:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as fh:
                fh.write(data)

        try:
            await asyncio.to_thread(_write)
        except FileExistsError as exc:
            raise ExternalServiceError(
                "The resource already exists", provider_name="storage"
            ) from exc
        except OSError as exc:
            raise ExternalServiceError(
                f"Error uploading file: {exc}", provider_name="storage"
            ) from exc

        logger.info("Stored object %s (%d bytes)", path, len(data))
        return path

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Object not found: {path}", provider_name="storage") from exc
        except OSError as exc:
            raise ExternalServiceError(
                f"Error downloading file: {exc}", provider_name="storage"
            ) from exc

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            raise ExternalServiceError(
                f"Error deleting file: {exc}", provider_name="storage"
            ) from exc
        logger.info("Deleted object %s", path)

    # ------------------------------------------------------------------
    # Signed URLs
    # ------------------------------------------------------------------

    async def signed_url(self, path: str, ttl_seconds: int) -> str:
        self._resolve(path)
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._sign(path, expires)})
        return f"{SIGNED_URL_PREFIX}/{quote(path)}?{query}"

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        """True when ``signature`` matches and ``expires`` lies in the future."""
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._sign(path, expires), signature)

    def _sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root) or target == self._root:
            raise NotFoundError(f"Invalid storage path: {path}", provider_name="storage")
        return target


class WorkspaceStorage:
    """
    Access-gated object storage.

    The workspace is read from the first path segment and the caller's
    grant is checked before the underlying store is touched.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        gate: AccessGate,
        size_limit: int | None = None,
        signed_url_ttl: int | None = None,
    ) -> None:
        self._storage = storage
        self._gate = gate
        self._size_limit = size_limit if size_limit is not None else settings.USER_FILE_SIZE_LIMIT
        self._signed_url_ttl = signed_url_ttl or settings.SIGNED_URL_TTL_SECONDS

    @property
    def size_limit(self) -> int:
        return self._size_limit

    def check_size(self, size: int) -> None:
        if size > self._size_limit:
            raise SizeLimitError(
                f"File must be less than {self._size_limit / 1_000_000:g}MB"
            )

    async def upload(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        path: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        await self._gate.authorize_path(session, user_id, path)
        self.check_size(len(data))
        return await self._storage.put(path, data, content_type)

    async def download(self, session: AsyncSession, user_id: uuid.UUID, path: str) -> bytes:
        await self._gate.authorize_path(session, user_id, path)
        return await self._storage.get(path)

    async def remove(self, session: AsyncSession, user_id: uuid.UUID, path: str) -> None:
        await self._gate.authorize_path(session, user_id, path)
        await self._storage.delete(path)

    async def signed_url(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        path: str,
        ttl_seconds: int | None = None,
    ) -> str:
        await self._gate.authorize_path(session, user_id, path)
        return await self._storage.signed_url(path, ttl_seconds or self._signed_url_ttl)

"""
Access Gate

Verifies that an identity has a live grant on a workspace before any
storage read/write/delete or any row tied to that workspace is touched.
Rejection raises ``AuthorizationError``; callers must run the check
strictly before their first side effect.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.errors import AuthorizationError
from docvault.models.schemas import WorkspaceAccessGrant
from docvault.repositories.access import AccessRepository

logger = logging.getLogger(__name__)


def workspace_id_from_path(path: str) -> uuid.UUID:
    """Workspace id encoded as the first segment of ``{workspace_id}/{name}``."""
    head = path.split("/", 1)[0]
    try:
        return uuid.UUID(head)
    except ValueError as exc:
        raise AuthorizationError(f"No workspace in storage path '{path}'") from exc


class AccessGate:
    """
    Workspace authorization backed by the membership tables.

    Usage::

        gate = AccessGate(AccessRepository())
        grant = await gate.authorize(session, user_id, workspace_id)
    """

    def __init__(self, repository: AccessRepository | None = None) -> None:
        self._repository = repository or AccessRepository()

    async def authorize(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> WorkspaceAccessGrant:
        """Return the caller's grant on ``workspace_id`` or raise."""
        grant = await self._repository.find_grant(session, user_id, workspace_id)
        if grant is None:
            logger.warning("Access denied: user %s -> workspace %s", user_id, workspace_id)
            raise AuthorizationError()
        logger.debug(
            "Access granted: user %s -> workspace %s (role=%s)",
            user_id,
            workspace_id,
            grant.role,
        )
        return grant

    async def authorize_path(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        path: str,
    ) -> WorkspaceAccessGrant:
        """Authorize against the workspace a storage path belongs to."""
        return await self.authorize(session, user_id, workspace_id_from_path(path))

    async def authorize_any(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_ids: Iterable[uuid.UUID],
    ) -> WorkspaceAccessGrant:
        """First grant found among ``workspace_ids``; raise if there is none."""
        for workspace_id in workspace_ids:
            grant = await self._repository.find_grant(session, user_id, workspace_id)
            if grant is not None:
                return grant
        raise AuthorizationError()

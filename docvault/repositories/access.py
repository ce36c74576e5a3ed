"""
Access Repository

Read access to workspace ownership, account membership and profiles,
plus the account-workspace insert used by workspace assignment.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.models.access import (
    AccountMemberRecord,
    AccountWorkspaceRecord,
    ProfileRecord,
    WorkspaceRecord,
)
from docvault.models.schemas import WorkspaceAccessGrant
from docvault.repositories.base import database_errors

OWNER_ROLE = "owner"


class AccessRepository:
    """
    Grant lookups for the access gate.

    A user reaches a workspace either by owning it directly or through
    an account they are a member of that has been granted the workspace.
    """

    async def find_grant(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> WorkspaceAccessGrant | None:
        """Return the first satisfying grant, or None."""
        owned = select(WorkspaceRecord.id).where(
            WorkspaceRecord.id == workspace_id,
            WorkspaceRecord.user_id == user_id,
        )
        via_account = (
            select(AccountMemberRecord.account_id, AccountMemberRecord.role)
            .join(
                AccountWorkspaceRecord,
                AccountWorkspaceRecord.account_id == AccountMemberRecord.account_id,
            )
            .where(
                AccountWorkspaceRecord.workspace_id == workspace_id,
                AccountMemberRecord.user_id == user_id,
            )
            .limit(1)
        )

        with database_errors("Workspace access check"):
            if (await session.execute(owned)).first() is not None:
                return WorkspaceAccessGrant(
                    user_id=user_id,
                    workspace_id=workspace_id,
                    role=OWNER_ROLE,
                )
            row = (await session.execute(via_account)).first()

        if row is None:
            return None
        return WorkspaceAccessGrant(
            user_id=user_id,
            workspace_id=workspace_id,
            role=row.role,
            account_id=row.account_id,
        )

    async def get_profile(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
    ) -> ProfileRecord | None:
        stmt = select(ProfileRecord).where(ProfileRecord.user_id == user_id)
        with database_errors("Profile lookup"):
            result = await session.execute(stmt)
            return result.scalars().first()

    async def add_account_workspace(
        self,
        session: AsyncSession,
        account_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> AccountWorkspaceRecord:
        record = AccountWorkspaceRecord(account_id=account_id, workspace_id=workspace_id)
        with database_errors("Insert into account_workspaces"):
            session.add(record)
            await session.commit()
        return record

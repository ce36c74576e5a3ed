"""
Workspace Membership Models

Read-mostly tables consumed by the access gate and the retrieval
credential check. Creation and editing of these rows belongs to the
admin screens, not to this service.

Tables:
    workspaces          - Tenant-scoped containers, owned by one user.
    accounts            - Groups of identities.
    account_members     - Identity membership in an account, with a role.
    account_workspaces  - Workspaces an account has been granted.
    profiles            - Per-user provider credentials.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from docvault.models.base import Base, TimestampMixin


class WorkspaceRecord(Base, TimestampMixin):
    __tablename__ = "workspaces"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_home: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class AccountRecord(Base, TimestampMixin):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")


class AccountMemberRecord(Base, TimestampMixin):
    __tablename__ = "account_members"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, index=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="member")


class AccountWorkspaceRecord(Base, TimestampMixin):
    __tablename__ = "account_workspaces"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )


class ProfileRecord(Base, TimestampMixin):
    """
    Per-user settings carrying the hosted embedding credentials.

    ``use_azure_openai`` switches the hosted provider to the Azure
    gateway shape (endpoint + deployment id + ``api-key`` header).
    """

    __tablename__ = "profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    system_role: Mapped[str | None] = mapped_column(String(32), nullable=True)
    openai_api_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    openai_organization_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    use_azure_openai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    azure_openai_api_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    azure_openai_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)
    azure_openai_embeddings_id: Mapped[str | None] = mapped_column(
        String(200), nullable=True
    )

"""create files, file items and workspace membership

Revision ID: 3f8a1c2d9b47
Revises:
Create Date: 2026-10-19 10:12:44.210318

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "3f8a1c2d9b47"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create the document, chunk and membership tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # -- membership --
    op.create_table(
        "workspaces",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_home", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspaces_user_id", "workspaces", ["user_id"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False, server_default=""),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "account_members",
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="member"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("account_id", "user_id"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_account_members_user_id", "account_members", ["user_id"])

    op.create_table(
        "account_workspaces",
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("workspace_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("account_id", "workspace_id"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_account_workspaces_workspace_id", "account_workspaces", ["workspace_id"]
    )

    op.create_table(
        "profiles",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("system_role", sa.String(32), nullable=True),
        sa.Column("openai_api_key", sa.String(500), nullable=True),
        sa.Column("openai_organization_id", sa.String(200), nullable=True),
        sa.Column(
            "use_azure_openai", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("azure_openai_api_key", sa.String(500), nullable=True),
        sa.Column("azure_openai_endpoint", sa.String(500), nullable=True),
        sa.Column("azure_openai_embeddings_id", sa.String(200), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # -- files --
    op.create_table(
        "files",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(200), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("file_path", sa.String(1000), nullable=False, server_default=""),
        sa.Column("sharing", sa.String(32), nullable=False, server_default="private"),
        sa.Column("status", sa.String(32), nullable=False, server_default="row_created"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_files_user_id", "files", ["user_id"])
    op.create_index("ix_files_status", "files", ["status"])

    op.create_table(
        "file_workspaces",
        sa.Column("file_id", sa.Uuid(), nullable=False),
        sa.Column("workspace_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("file_id", "workspace_id"),
        sa.ForeignKeyConstraint(["file_id"], ["files.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_file_workspaces_workspace_id", "file_workspaces", ["workspace_id"])

    op.create_table(
        "file_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("file_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tokens", sa.Integer(), nullable=False),
        sa.Column(
            "embeddings_provider", sa.String(16), nullable=False, server_default="openai"
        ),
        sa.Column("openai_embedding", Vector(1536), nullable=True),
        sa.Column("local_embedding", Vector(384), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["file_id"], ["files.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_file_items_file_id", "file_items", ["file_id"])

    # HNSW indexes for cosine similarity search, one per provider column
    op.execute(
        """
        CREATE INDEX ix_file_items_openai_embedding_hnsw
        ON file_items
        USING hnsw (openai_embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
        """
    )
    op.execute(
        """
        CREATE INDEX ix_file_items_local_embedding_hnsw
        ON file_items
        USING hnsw (local_embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
        """
    )


def downgrade() -> None:
    """Drop every table created above."""
    op.execute("DROP INDEX IF EXISTS ix_file_items_local_embedding_hnsw")
    op.execute("DROP INDEX IF EXISTS ix_file_items_openai_embedding_hnsw")
    op.drop_index("ix_file_items_file_id", table_name="file_items")
    op.drop_table("file_items")
    op.drop_index("ix_file_workspaces_workspace_id", table_name="file_workspaces")
    op.drop_table("file_workspaces")
    op.drop_index("ix_files_status", table_name="files")
    op.drop_index("ix_files_user_id", table_name="files")
    op.drop_table("files")
    op.drop_table("profiles")
    op.drop_index("ix_account_workspaces_workspace_id", table_name="account_workspaces")
    op.drop_table("account_workspaces")
    op.drop_index("ix_account_members_user_id", table_name="account_members")
    op.drop_table("account_members")
    op.drop_table("accounts")
    op.drop_index("ix_workspaces_user_id", table_name="workspaces")
    op.drop_table("workspaces")

"""create links and users tables

Revision ID: a3f1c9d2e7b4
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a3f1c9d2e7b4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "links",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("title", sa.String(512), nullable=True),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("owner_email", sa.String(320), nullable=True),
        sa.Column("blob_ref", sa.String(2000), nullable=False),
        sa.Column(
            "visibility",
            sa.Enum("public", "private", name="link_visibility"),
            nullable=False,
        ),
        sa.Column("password", sa.Text, nullable=True),
        sa.Column("expiration", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("access_count", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_links_owner_email", "links", ["owner_email"])
    op.create_index("ix_links_created_at", "links", ["created_at"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(256), nullable=True),
        sa.Column("photo", sa.String(2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_links_created_at", table_name="links")
    op.drop_index("ix_links_owner_email", table_name="links")
    op.drop_table("links")
    sa.Enum(name="link_visibility").drop(op.get_bind(), checkfirst=True)

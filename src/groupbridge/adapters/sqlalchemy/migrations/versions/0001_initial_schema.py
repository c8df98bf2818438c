"""Local groups, user accounts and the directory DN ledger.

Revision ID: 0001_initial_schema
Revises:
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

DIRECTORY_ID_OFFSET = 1_000_000


def upgrade() -> None:
    op.create_table(
        "local_group",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.CheckConstraint(
            f"id < {DIRECTORY_ID_OFFSET}",
            name=op.f("ck_local_group_below_directory_offset"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_local_group")),
        sa.UniqueConstraint("name", name=op.f("uq_local_group_name")),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "local_group_member",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column(
            "member_kind",
            sa.Enum("USER", "GROUP", name="memberkind", native_enum=False, length=16),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["local_group.id"],
            name=op.f("fk_local_group_member_group_id_local_group"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "group_id", "member_id", "member_kind", name=op.f("pk_local_group_member")
        ),
    )
    op.create_index(
        "ix_local_group_member_member",
        "local_group_member",
        ["member_id", "member_kind"],
    )
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_account")),
        sa.UniqueConstraint("name", name=op.f("uq_user_account_name")),
    )
    op.create_table(
        "directory_group_id_map",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("dn", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_directory_group_id_map")),
        sa.UniqueConstraint("dn", name=op.f("uq_directory_group_id_map_dn")),
        sqlite_autoincrement=True,
    )


def downgrade() -> None:
    op.drop_table("directory_group_id_map")
    op.drop_table("user_account")
    op.drop_index("ix_local_group_member_member", table_name="local_group_member")
    op.drop_table("local_group_member")
    op.drop_table("local_group")

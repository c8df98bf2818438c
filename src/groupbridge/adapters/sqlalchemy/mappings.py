"""SQLAlchemy table metadata for local groups, user accounts and DN mappings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    orm,
)

from groupbridge.domain.model import DIRECTORY_ID_OFFSET, MemberKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

local_group_table = Table(
    "local_group",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    UniqueConstraint("name"),
    CheckConstraint(f"id < {DIRECTORY_ID_OFFSET}", name="below_directory_offset"),
    sqlite_autoincrement=True,
)

local_group_member_table = Table(
    "local_group_member",
    mapper_registry.metadata,
    Column(
        "group_id",
        Integer,
        ForeignKey("local_group.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("member_id", Integer, primary_key=True),
    Column("member_kind", Enum(MemberKind, native_enum=False, length=16), primary_key=True),
    Index("ix_local_group_member_member", "member_id", "member_kind"),
)

user_account_table = Table(
    "user_account",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    UniqueConstraint("name"),
)

# Append-only: rows are never updated or deleted.
directory_group_id_map_table = Table(
    "directory_group_id_map",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("dn", String(255), nullable=False),
    UniqueConstraint("dn"),
    sqlite_autoincrement=True,
)


def create_all_tables(engine: Engine) -> None:
    """Create every table directly from metadata, bypassing migrations."""

    mapper_registry.metadata.create_all(engine)

"""SQLAlchemy adapter package for groupbridge."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry
from .repositories import (
    SqlAlchemyDnMappingRepository,
    SqlAlchemyLocalGroupStore,
    SqlAlchemyUserAccounts,
)
from .unit_of_work import SqlAlchemyGroupUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyDnMappingRepository",
    "SqlAlchemyGroupUnitOfWork",
    "SqlAlchemyLocalGroupStore",
    "SqlAlchemyUserAccounts",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]

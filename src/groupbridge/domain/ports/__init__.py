"""Domain port definitions for adapters."""

from __future__ import annotations

from .directory import (
    DirectoryClient,
    DirectoryEntry,
    DirectoryGroupRecord,
    DirectoryGroupSource,
    DirectoryMemberRecord,
)
from .persistence import DnMappingRepository, LocalGroupStore, UserAccounts
from .unit_of_work import GroupRepositories, GroupUnitOfWork

__all__ = [
    "DirectoryClient",
    "DirectoryEntry",
    "DirectoryGroupRecord",
    "DirectoryGroupSource",
    "DirectoryMemberRecord",
    "DnMappingRepository",
    "GroupRepositories",
    "GroupUnitOfWork",
    "LocalGroupStore",
    "UserAccounts",
]

"""Public domain model surface."""

from __future__ import annotations

from groupbridge.domain.model.enums import GroupOrigin, MemberKind, SearchMode, SearchScope
from groupbridge.domain.model.group import (
    DIRECTORY_ID_OFFSET,
    Group,
    GroupRef,
    Member,
    is_directory_id,
)

__all__ = [
    "DIRECTORY_ID_OFFSET",
    "Group",
    "GroupOrigin",
    "GroupRef",
    "Member",
    "MemberKind",
    "SearchMode",
    "SearchScope",
    "is_directory_id",
]

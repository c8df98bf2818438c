"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class GroupOrigin(StrEnum):
    LOCAL = "local"
    DIRECTORY = "directory"


class MemberKind(StrEnum):
    USER = "user"
    GROUP = "group"


class SearchMode(StrEnum):
    """Filter shapes understood by the directory group source."""

    AS_MEMBER = "as_member"
    BY_NAME = "by_name"
    BY_DN = "by_dn"
    BY_NAME_FILTER = "by_name_filter"


class SearchScope(StrEnum):
    BASE = "base"
    LEVEL = "level"
    SUBTREE = "subtree"

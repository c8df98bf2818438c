"""Errors raised by the group resolver and its collaborators."""

from __future__ import annotations


class GroupDirectoryError(RuntimeError):
    """Base class for resolver errors."""


class ImmutableEntityError(GroupDirectoryError):
    """Raised when a write targets a group owned by the directory."""

    def __init__(self, group_id: int, *, reason: str | None = None) -> None:
        message = f"Group {group_id} is a directory group and cannot be modified"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.group_id = group_id


class NameCollisionError(GroupDirectoryError):
    """Raised when a local group would reuse the name of a directory group."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A directory group named {name!r} already exists")
        self.name = name


class GroupNotFoundError(GroupDirectoryError, LookupError):
    """Raised when a mutation references a group that does not exist."""

    def __init__(self, group_id: int) -> None:
        super().__init__(f"Group {group_id} does not exist")
        self.group_id = group_id


class DirectoryUnavailableError(GroupDirectoryError):
    """Raised when the directory server cannot be reached or bound."""

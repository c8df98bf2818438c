"""Ports for reading the external directory service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from groupbridge.domain.model import SearchScope

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from groupbridge.domain.model import Group, MemberKind, SearchMode


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One search result: a DN plus its multi-valued attributes.

    Attribute names are matched case-insensitively, as directory servers do.
    """

    dn: str
    attributes: Mapping[str, tuple[str, ...]] = field(default_factory=dict[str, tuple[str, ...]])

    def values(self, name: str) -> tuple[str, ...]:
        wanted = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == wanted:
                return values
        return ()

    def first(self, name: str) -> str | None:
        values = self.values(name)
        return values[0] if values else None


@dataclass(frozen=True, slots=True)
class DirectoryGroupRecord:
    name: str
    dn: str


@dataclass(frozen=True, slots=True)
class DirectoryMemberRecord:
    dn: str
    name: str | None


@runtime_checkable
class DirectoryClient(Protocol):
    """Generic search primitive over the directory.

    Implementations return an empty list, never raise, when the directory
    cannot be used. An empty ``attributes`` sequence requests all attributes.
    """

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str] = (),
        *,
        scope: SearchScope = SearchScope.SUBTREE,
    ) -> list[DirectoryEntry]: ...


@runtime_checkable
class DirectoryGroupSource(Protocol):
    """Group-shaped view of the directory used by the resolver."""

    def search_groups(self, term: str, mode: SearchMode) -> list[DirectoryGroupRecord]: ...

    def search_members(self, group_dn: str, kind: MemberKind) -> list[DirectoryMemberRecord]: ...

    def to_group(self, record: DirectoryGroupRecord) -> Group: ...

    def list_group_dns(self) -> list[str]: ...

    def member_dns(self, group_dn: str) -> list[str]: ...

    def user_dn(self, username: str) -> str | None: ...

    def list_user_names(self) -> list[str]: ...


__all__ = [
    "DirectoryClient",
    "DirectoryEntry",
    "DirectoryGroupRecord",
    "DirectoryGroupSource",
    "DirectoryMemberRecord",
]

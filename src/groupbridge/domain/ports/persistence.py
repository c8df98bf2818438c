"""Ports for persisting local groups, user accounts and DN mappings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from groupbridge.domain.model import Group, GroupRef, MemberKind


@runtime_checkable
class LocalGroupStore(Protocol):
    """Persistence contract for locally owned groups (ids below the directory offset)."""

    def save_group(self, group: Group) -> Group: ...

    def delete_group(self, group_id: int) -> None: ...

    def get_group_by_id(self, group_id: int) -> Group | None: ...

    def get_group_by_name(self, name: str) -> Group | None: ...

    def list_groups(self) -> list[Group]: ...

    def add_member(self, group_id: int, member_id: int, kind: MemberKind) -> None: ...

    def remove_member(self, group_id: int, member_id: int, kind: MemberKind) -> None: ...

    def remove_all_members(self, group_id: int) -> None: ...

    def members_of(self, group_id: int, kind: MemberKind) -> list[int]: ...

    def groups_of_member(self, member_id: int, kind: MemberKind) -> list[GroupRef]: ...

    def has_member(
        self,
        parent_id: int,
        child_id: int,
        kind: MemberKind,
        *,
        recursive: bool,
    ) -> bool: ...

    def group_exists(self, group_id: int) -> bool: ...

    def search_matching(self, fragment: str) -> dict[str, int]: ...


@runtime_checkable
class UserAccounts(Protocol):
    """Identity lookups supplied by the user-account service."""

    def username_to_id(self, name: str) -> int | None: ...

    def id_to_username(self, user_id: int) -> str | None: ...

    def create_user(self, name: str) -> int: ...


@runtime_checkable
class DnMappingRepository(Protocol):
    """Append-only ledger of directory DNs and their row ids."""

    def get_row_id(self, dn: str) -> int | None: ...

    def get_dn(self, row_id: int) -> str | None: ...

    def insert_or_get(self, dn: str) -> int: ...

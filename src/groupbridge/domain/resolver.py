"""Hybrid group resolver spanning the local group store and the directory.

The resolver presents one group graph to callers even though groups live in
two places:

- local groups are owned by the local store and keyed by small integer ids
- directory groups are read-only, addressed by DN, and receive synthetic ids
  above ``DIRECTORY_ID_OFFSET`` through the identifier mapper

Dispatch happens on the id partition. Name lookups consult the directory first
so that a directory group shadows a local group of the same name. Every write
path goes through ``_guard_writable`` which rejects directory ids before the
local store is touched.

The resolver keeps no state between calls beyond its collaborators.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from groupbridge.domain.errors import GroupNotFoundError, ImmutableEntityError, NameCollisionError
from groupbridge.domain.identifiers import canonical_dn
from groupbridge.domain.model import GroupRef, MemberKind, SearchMode, is_directory_id

if TYPE_CHECKING:
    from groupbridge.domain.identifiers import IdentifierMapper
    from groupbridge.domain.model import Group
    from groupbridge.domain.ports import (
        DirectoryGroupRecord,
        DirectoryGroupSource,
        LocalGroupStore,
        UserAccounts,
    )

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolverPolicy:
    allow_directory_group_members: bool = False
    lowercase_usernames: bool = False


class HybridGroupResolver:
    """Merge local and directory groups behind one lookup and membership API."""

    def __init__(
        self,
        *,
        local_store: LocalGroupStore,
        directory: DirectoryGroupSource,
        mapper: IdentifierMapper,
        users: UserAccounts,
        policy: ResolverPolicy | None = None,
    ) -> None:
        self._local = local_store
        self._directory = directory
        self._mapper = mapper
        self._users = users
        self._policy = policy or ResolverPolicy()

    @property
    def policy(self) -> ResolverPolicy:
        return self._policy

    # Lookup ---------------------------------------------------------------

    def get_group_by_name(self, name: str) -> Group | None:
        records = self._directory.search_groups(name, SearchMode.BY_NAME)
        if records:
            return self._directory.to_group(records[0])
        return self._local.get_group_by_name(name)

    def get_group_by_id(self, group_id: int) -> Group | None:
        if not is_directory_id(group_id):
            return self._local.get_group_by_id(group_id)
        dn = self._mapper.dn_for_id(group_id)
        if dn is None:
            return None
        record = self._record_for_dn(dn)
        return self._directory.to_group(record) if record is not None else None

    def group_name_for_id(self, group_id: int) -> str | None:
        group = self.get_group_by_id(group_id)
        return group.name if group is not None else None

    def group_exists(self, group_id: int) -> bool:
        if is_directory_id(group_id):
            return self._mapper.dn_for_id(group_id) is not None
        return self._local.group_exists(group_id)

    def get_groups(self) -> list[Group]:
        """Return the directory root groups followed by every unshadowed local group."""

        groups = self._directory_root_groups()
        directory_names = {group.name for group in groups}
        for group in self._local.list_groups():
            if group.name in directory_names:
                log.debug("Local group %r is shadowed by a directory group", group.name)
                continue
            groups.append(group)
        return groups

    def is_overloaded(self, name: str) -> bool:
        """Return whether ``name`` is defined both in the directory and locally."""

        if not self._directory.search_groups(name, SearchMode.BY_NAME):
            return False
        return self._local.get_group_by_name(name) is not None

    def search_matching_groups(self, fragment: str) -> dict[str, int]:
        matches = self._local.search_matching(fragment)
        for record in self._directory.search_groups(fragment, SearchMode.BY_NAME_FILTER):
            matches[record.name] = self._id_for_record(record)
        return matches

    def members_of(self, group_id: int, kind: MemberKind) -> list[int]:
        """Return the ids of the direct members of ``kind`` in ``group_id``."""

        if not is_directory_id(group_id):
            return self._local.members_of(group_id, kind)
        dn = self._mapper.dn_for_id(group_id)
        if dn is None:
            return []

        members: list[int] = []
        for record in self._directory.search_members(dn, kind):
            if kind is MemberKind.GROUP:
                member_id = self._mapper.id_for_dn(record.dn)
            else:
                member_id = self._user_id_for_name(record.name)
            if member_id is not None:
                members.append(member_id)
        return members

    def groups_of_member(self, member_id: int, kind: MemberKind) -> list[GroupRef]:
        """Return the direct parent groups of a user or group.

        A directory group replaces a local group of the same name.
        """

        by_name = {ref.name: ref.id for ref in self._local.groups_of_member(member_id, kind)}
        dn = self._directory_dn_for_member(member_id, kind)
        if dn is not None:
            for record in self._directory.search_groups(dn, SearchMode.AS_MEMBER):
                by_name[record.name] = self._id_for_record(record)
        return [GroupRef(id=group_id, name=name) for name, group_id in by_name.items()]

    # Membership -----------------------------------------------------------

    def is_member(
        self,
        parent_id: int,
        child_id: int,
        kind: MemberKind,
        *,
        recursive: bool = True,
    ) -> bool:
        """Return whether ``child_id`` is a member of ``parent_id`` across both stores."""

        parent_is_local = not is_directory_id(parent_id)
        if parent_is_local and self._local.has_member(
            parent_id, child_id, kind, recursive=recursive
        ):
            return True

        child_dn = self._directory_dn_for_member(child_id, kind)
        if child_dn is None:
            return False

        frontier: deque[str] = deque([child_dn])
        visited = {canonical_dn(child_dn)}
        while frontier:
            dn = frontier.popleft()
            for record in self._directory.search_groups(dn, SearchMode.AS_MEMBER):
                group_id = self._id_for_record(record)
                if group_id == parent_id:
                    return True
                # a directory group may itself be nested inside a local group
                if (
                    recursive
                    and parent_is_local
                    and self._local.has_member(
                        parent_id, group_id, MemberKind.GROUP, recursive=True
                    )
                ):
                    return True
                key = canonical_dn(record.dn)
                if key not in visited:
                    visited.add(key)
                    frontier.append(record.dn)
            if not recursive:
                break
        return False

    # Writes ---------------------------------------------------------------

    def save_group(self, group: Group) -> Group:
        if group.id is not None:
            self._guard_writable(group.id)
        for child_id in group.group_ids():
            self._guard_directory_child(child_id)
        if self._directory.search_groups(group.name, SearchMode.BY_NAME):
            log.info("Rejected local group %r: name is taken by a directory group", group.name)
            raise NameCollisionError(group.name)
        return self._local.save_group(group)

    def delete_group(self, group_id: int) -> None:
        self._guard_writable(group_id)
        self._local.delete_group(group_id)

    def add_user_to_group(self, group_id: int, user_id: int) -> None:
        self._guard_writable(group_id)
        self._local.add_member(group_id, user_id, MemberKind.USER)

    def remove_user_from_group(self, group_id: int, user_id: int) -> None:
        self._guard_writable(group_id)
        self._local.remove_member(group_id, user_id, MemberKind.USER)

    def add_group_to_group(self, parent_id: int, child_id: int) -> None:
        self._guard_writable(parent_id, reason="directory groups cannot receive members")
        self._guard_directory_child(child_id)
        if is_directory_id(child_id) and self._mapper.dn_for_id(child_id) is None:
            raise GroupNotFoundError(child_id)
        self._local.add_member(parent_id, child_id, MemberKind.GROUP)

    def remove_group_from_group(self, parent_id: int, child_id: int) -> None:
        self._guard_writable(parent_id, reason="directory groups cannot lose members")
        self._guard_directory_child(child_id)
        self._local.remove_member(parent_id, child_id, MemberKind.GROUP)

    def remove_all_members(self, group_id: int) -> None:
        self._guard_writable(group_id)
        self._local.remove_all_members(group_id)

    def import_directory_users(self) -> list[str]:
        """Create a local account for every directory user that lacks one."""

        created: list[str] = []
        for raw_name in self._directory.list_user_names():
            name = raw_name[:1].upper() + raw_name[1:]
            if not name or name in created:
                continue
            if self._users.username_to_id(name) is not None:
                continue
            self._users.create_user(name)
            created.append(name)
        if created:
            log.info("Imported %s directory users", len(created))
        return created

    # Helpers --------------------------------------------------------------

    def _guard_writable(self, group_id: int, *, reason: str | None = None) -> None:
        if is_directory_id(group_id):
            log.info("Rejected write to directory group %s", group_id)
            raise ImmutableEntityError(group_id, reason=reason)

    def _guard_directory_child(self, child_id: int) -> None:
        if is_directory_id(child_id) and not self._policy.allow_directory_group_members:
            log.info("Rejected directory group %s as member of a local group", child_id)
            raise ImmutableEntityError(
                child_id,
                reason="directory groups are not allowed as members of local groups",
            )

    def _directory_root_groups(self) -> list[Group]:
        candidates = self._directory.list_group_dns()
        roots = {canonical_dn(dn): dn for dn in candidates}
        for dn in candidates:
            for member_dn in self._directory.member_dns(dn):
                roots.pop(canonical_dn(member_dn), None)

        groups: list[Group] = []
        seen: set[str] = set()
        for root_dn in roots.values():
            for record in self._directory.search_groups(root_dn, SearchMode.BY_DN):
                key = canonical_dn(record.dn)
                if key in seen:
                    continue
                seen.add(key)
                groups.append(self._directory.to_group(record))
        return groups

    def _record_for_dn(self, dn: str) -> DirectoryGroupRecord | None:
        wanted = canonical_dn(dn)
        for record in self._directory.search_groups(dn, SearchMode.BY_DN):
            if canonical_dn(record.dn) == wanted:
                return record
        return None

    def _directory_dn_for_member(self, member_id: int, kind: MemberKind) -> str | None:
        if kind is MemberKind.USER:
            username = self._users.id_to_username(member_id)
            if username is None:
                return None
            if self._policy.lowercase_usernames:
                username = username.lower()
            return self._directory.user_dn(username)
        # local groups never appear inside the directory
        if not is_directory_id(member_id):
            return None
        return self._mapper.dn_for_id(member_id)

    def _id_for_record(self, record: DirectoryGroupRecord) -> int:
        group_id = self._mapper.id_for_dn(record.dn)
        if group_id is None:
            raise RuntimeError(f"Identifier mapper did not allocate an id for {record.dn}")
        return group_id

    def _user_id_for_name(self, name: str | None) -> int | None:
        if not name:
            return None
        return self._users.username_to_id(name[:1].upper() + name[1:])

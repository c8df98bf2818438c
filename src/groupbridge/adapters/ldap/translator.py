"""Translate directory search results into domain groups."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from ldap3.utils.conv import escape_filter_chars

from groupbridge.domain.model import Group, GroupOrigin, MemberKind, SearchMode, SearchScope
from groupbridge.domain.ports import DirectoryGroupRecord, DirectoryMemberRecord

if TYPE_CHECKING:
    from groupbridge.config.directory import DirectoryConfig
    from groupbridge.domain.identifiers import IdentifierMapper
    from groupbridge.domain.ports import DirectoryClient, DirectoryEntry

log = getLogger(__name__)


def _escape(value: str) -> str:
    # a lone "*" is kept as a wildcard
    if value == "*":
        return value
    return escape_filter_chars(value)


class DirectoryGroupTranslator:
    """Group-shaped queries over a ``DirectoryClient``."""

    def __init__(
        self,
        *,
        client: DirectoryClient,
        mapper: IdentifierMapper,
        config: DirectoryConfig,
    ) -> None:
        self._client = client
        self._mapper = mapper
        self._config = config

    def search_groups(self, term: str, mode: SearchMode) -> list[DirectoryGroupRecord]:
        """Run one group search and return ``(name, dn)`` records."""

        base, search_filter, scope = self._group_query(term, mode)
        name_attr = self._config.group_name_attribute
        entries = self._client.search(base, search_filter, [name_attr], scope=scope)
        return [record for entry in entries if (record := self._group_record(entry)) is not None]

    def search_members(self, group_dn: str, kind: MemberKind) -> list[DirectoryMemberRecord]:
        """Return the direct members of ``group_dn`` that are of ``kind``.

        Each DN listed in the membership attribute is looked up on its own,
        filtered to the user or group object class, so DNs of the other kind and
        dangling references drop out.
        """

        if kind is MemberKind.USER:
            objectclass = self._config.user_objectclass
            name_attr = self._config.user_name_attribute
        else:
            objectclass = self._config.group_objectclass
            name_attr = self._config.group_name_attribute

        members: list[DirectoryMemberRecord] = []
        for member_dn in self.member_dns(group_dn):
            entries = self._client.search(
                member_dn,
                f"(objectclass={objectclass})",
                ["objectclass", name_attr],
                scope=SearchScope.BASE,
            )
            if not entries:
                continue
            entry = entries[0]
            members.append(DirectoryMemberRecord(dn=entry.dn, name=entry.first(name_attr)))
        return members

    def member_dns(self, group_dn: str) -> list[str]:
        member_attr = self._config.group_member_attribute
        entries = self._client.search(
            group_dn,
            f"(objectclass={self._config.group_objectclass})",
            [member_attr],
            scope=SearchScope.BASE,
        )
        if not entries:
            return []
        return [dn for dn in entries[0].values(member_attr) if dn]

    def list_group_dns(self) -> list[str]:
        entries = self._client.search(
            self._config.group_base_dn,
            f"(objectclass={self._config.group_objectclass})",
            [self._config.group_name_attribute],
        )
        return [entry.dn for entry in entries]

    def user_dn(self, username: str) -> str | None:
        name_attr = self._config.user_name_attribute
        objectclass = self._config.user_objectclass
        entries = self._client.search(
            self._config.user_base_dn,
            f"(&(objectclass={objectclass})({name_attr}={_escape(username)}))",
            [name_attr],
        )
        if not entries:
            return None
        if len(entries) > 1:
            log.warning("User name %r matches %s directory entries", username, len(entries))
        return entries[0].dn

    def list_user_names(self) -> list[str]:
        name_attr = self._config.user_name_attribute
        entries = self._client.search(
            self._config.user_base_dn,
            f"(objectclass={self._config.user_objectclass})",
            [name_attr],
        )
        return [name for entry in entries if (name := entry.first(name_attr))]

    def to_group(self, record: DirectoryGroupRecord) -> Group:
        group_id = self._mapper.id_for_dn(record.dn)
        return Group(name=record.name, id=group_id, origin=GroupOrigin.DIRECTORY, dn=record.dn)

    def _group_query(self, term: str, mode: SearchMode) -> tuple[str, str, SearchScope]:
        objectclass = self._config.group_objectclass
        member_attr = self._config.group_member_attribute
        name_attr = self._config.group_name_attribute
        base = self._config.group_base_dn
        value = _escape(term)

        match mode:
            case SearchMode.AS_MEMBER:
                search_filter = f"(&({member_attr}={value})(objectclass={objectclass}))"
            case SearchMode.BY_NAME:
                search_filter = f"(&({name_attr}={value})(objectclass={objectclass}))"
            case SearchMode.BY_NAME_FILTER:
                search_filter = f"(&({name_attr}=*{value}*)(objectclass={objectclass}))"
            case SearchMode.BY_DN:
                scope = SearchScope.BASE
                if self._config.expand_root_subtree:
                    scope = SearchScope.SUBTREE
                return term, f"(objectclass={objectclass})", scope
        return base, search_filter, SearchScope.SUBTREE

    def _group_record(self, entry: DirectoryEntry) -> DirectoryGroupRecord | None:
        name = entry.first(self._config.group_name_attribute)
        if not name:
            log.debug("Skipping directory group without a name: %s", entry.dn)
            return None
        return DirectoryGroupRecord(name=name, dn=entry.dn)

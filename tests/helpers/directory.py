"""In-memory directory used in place of an LDAP server."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from groupbridge.config import DirectoryConfig
from groupbridge.domain.model import SearchScope
from groupbridge.domain.ports import DirectoryEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

PEOPLE_BASE = "ou=people,dc=example,dc=org"
GROUPS_BASE = "ou=groups,dc=example,dc=org"

_CLAUSE = re.compile(r"\(([^()=]+)=((?:[^()\\]|\\[0-9a-fA-F]{2})*)\)")
_ESCAPED = re.compile(r"\\([0-9a-fA-F]{2})")


def make_directory_config(**overrides: object) -> DirectoryConfig:
    values: dict[str, object] = {
        "uri": "ldap://directory.test",
        "user_base_dn": PEOPLE_BASE,
        "group_base_dn": GROUPS_BASE,
    }
    values.update(overrides)
    return DirectoryConfig(**values)  # type: ignore[arg-type]


def group_dn(cn: str, base: str = GROUPS_BASE) -> str:
    return f"cn={cn},{base}"


def user_dn(uid: str, base: str = PEOPLE_BASE) -> str:
    return f"uid={uid},{base}"


def _unescape(value: str) -> str:
    return _ESCAPED.sub(lambda match: chr(int(match.group(1), 16)), value)


def _parse_filter(search_filter: str) -> list[tuple[str, str]]:
    body = search_filter[2:-1] if search_filter.startswith("(&") else search_filter
    clauses = _CLAUSE.findall(body)
    if "".join(f"({attr}={value})" for attr, value in clauses) != body:
        raise ValueError(f"Unsupported filter: {search_filter}")
    return clauses


def _clause_matches(entry: DirectoryEntry, attribute: str, pattern: str) -> bool:
    values = [value.lower() for value in entry.values(attribute)]
    if pattern.startswith("*") and pattern.endswith("*"):
        needle = _unescape(pattern.strip("*")).lower()
        return any(needle in value for value in values)
    return _unescape(pattern).lower() in values


def _in_scope(dn: str, base: str, scope: SearchScope) -> bool:
    dn, base = dn.lower(), base.lower()
    if scope is SearchScope.BASE:
        return dn == base
    if not dn.endswith("," + base):
        return scope is SearchScope.SUBTREE and dn == base
    if scope is SearchScope.LEVEL:
        return "," not in dn[: -len(base) - 1]
    return True


@dataclass(frozen=True, slots=True)
class SearchCall:
    base_dn: str
    search_filter: str
    attributes: tuple[str, ...]
    scope: SearchScope


@dataclass(slots=True)
class FakeDirectory:
    """Directory client over a dict of entries keyed by lower-cased DN."""

    entries: dict[str, DirectoryEntry] = field(default_factory=dict[str, DirectoryEntry])
    calls: list[SearchCall] = field(default_factory=list[SearchCall])
    available: bool = True

    def add_user(self, uid: str, *, base: str = PEOPLE_BASE) -> str:
        dn = user_dn(uid, base)
        self._put(dn, {"objectClass": ("top", "inetOrgPerson"), "uid": (uid,)})
        return dn

    def add_group(self, cn: str, *members: str, base: str = GROUPS_BASE) -> str:
        dn = group_dn(cn, base)
        self._put(dn, {"objectClass": ("top", "groupOfNames"), "cn": (cn,), "member": members})
        return dn

    def add_members(self, dn: str, *members: str) -> None:
        entry = self.entries[dn.lower()]
        attributes = dict(entry.attributes)
        attributes["member"] = tuple(attributes.get("member", ())) + members
        self.entries[dn.lower()] = DirectoryEntry(dn=entry.dn, attributes=attributes)

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str] = (),
        *,
        scope: SearchScope = SearchScope.SUBTREE,
    ) -> list[DirectoryEntry]:
        self.calls.append(SearchCall(base_dn, search_filter, tuple(attributes), scope))
        if not self.available:
            return []
        clauses = _parse_filter(search_filter)
        found: list[DirectoryEntry] = []
        for entry in self.entries.values():
            if not _in_scope(entry.dn, base_dn, scope):
                continue
            if all(_clause_matches(entry, attr, pattern) for attr, pattern in clauses):
                found.append(self._project(entry, attributes))
        return found

    def _put(self, dn: str, attributes: dict[str, tuple[str, ...]]) -> None:
        self.entries[dn.lower()] = DirectoryEntry(dn=dn, attributes=attributes)

    @staticmethod
    def _project(entry: DirectoryEntry, attributes: Sequence[str]) -> DirectoryEntry:
        if not attributes:
            return entry
        wanted = {name.lower() for name in attributes}
        kept = {key: values for key, values in entry.attributes.items() if key.lower() in wanted}
        return DirectoryEntry(dn=entry.dn, attributes=kept)

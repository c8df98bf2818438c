"""Pydantic models describing ldap3 search responses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, field_validator

from groupbridge.domain.ports import DirectoryEntry

SEARCH_RESULT_ENTRY = "searchResEntry"


def _as_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class LdapBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SearchResultEntry(LdapBaseModel):
    """One ``searchResEntry`` item of ``Connection.response``.

    ldap3 returns single values as scalars when schema information is loaded
    and as lists otherwise; both shapes are normalized to lists of strings.
    """

    type: str = SEARCH_RESULT_ENTRY
    dn: str
    attributes: dict[str, list[str]] = {}

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_values(cls, value: object) -> object:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            return value
        normalized: dict[str, list[str]] = {}
        for key, raw in cast(Mapping[str, object], value).items():
            if raw is None:
                normalized[str(key)] = []
            elif isinstance(raw, (str, bytes)):
                normalized[str(key)] = [_as_text(raw)]
            elif isinstance(raw, Iterable):
                normalized[str(key)] = [_as_text(item) for item in cast(Iterable[object], raw)]
            else:
                normalized[str(key)] = [_as_text(raw)]
        return normalized

    def to_entry(self) -> DirectoryEntry:
        return DirectoryEntry(
            dn=self.dn,
            attributes={key: tuple(values) for key, values in self.attributes.items()},
        )


def parse_search_response(response: Iterable[Mapping[str, object]]) -> list[DirectoryEntry]:
    """Translate ``Connection.response`` into directory entries, skipping referrals."""

    entries: list[DirectoryEntry] = []
    for item in response:
        if item.get("type", SEARCH_RESULT_ENTRY) != SEARCH_RESULT_ENTRY:
            continue
        entries.append(SearchResultEntry.model_validate(item).to_entry())
    return entries

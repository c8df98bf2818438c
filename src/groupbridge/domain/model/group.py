"""Group entities shared by the local store and the directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .enums import GroupOrigin, MemberKind

DIRECTORY_ID_OFFSET: Final[int] = 1_000_000


def is_directory_id(group_id: int) -> bool:
    """Return whether ``group_id`` lies in the synthetic directory ID space."""

    return group_id >= DIRECTORY_ID_OFFSET


@dataclass(frozen=True, slots=True)
class Member:
    member_id: int
    kind: MemberKind


@dataclass(frozen=True, slots=True)
class GroupRef:
    """Lightweight (id, name) pair returned by membership listings."""

    id: int
    name: str


@dataclass(slots=True)
class Group:
    """A group defined either locally or in the directory.

    Local groups carry ``id=None`` until the local store assigns one. Directory
    groups are synthesized per read and always carry their DN.
    """

    name: str
    id: int | None = None
    origin: GroupOrigin = GroupOrigin.LOCAL
    members: set[Member] = field(default_factory=set[Member])
    dn: str | None = None

    def __post_init__(self) -> None:
        if self.id is None:
            if self.origin is GroupOrigin.DIRECTORY:
                raise ValueError("directory groups require a synthetic id")
            return
        if is_directory_id(self.id) != (self.origin is GroupOrigin.DIRECTORY):
            raise ValueError(
                f"group id {self.id} does not match origin {self.origin} "
                f"(directory ids start at {DIRECTORY_ID_OFFSET})"
            )

    @property
    def mutable(self) -> bool:
        return self.origin is GroupOrigin.LOCAL

    @property
    def is_directory(self) -> bool:
        return self.origin is GroupOrigin.DIRECTORY

    def user_ids(self) -> set[int]:
        return {m.member_id for m in self.members if m.kind is MemberKind.USER}

    def group_ids(self) -> set[int]:
        return {m.member_id for m in self.members if m.kind is MemberKind.GROUP}

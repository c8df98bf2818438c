"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from collections import defaultdict, deque
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from groupbridge.adapters.sqlalchemy.mappings import (
    directory_group_id_map_table,
    local_group_member_table,
    local_group_table,
    user_account_table,
)
from groupbridge.domain.errors import GroupNotFoundError
from groupbridge.domain.model import Group, GroupRef, Member, MemberKind, is_directory_id

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.orm import Session, sessionmaker
    from sqlalchemy.sql import Select
    from sqlalchemy.sql.dml import Insert

log = getLogger(__name__)

_members = local_group_member_table
_groups = local_group_table


class SqlAlchemyLocalGroupStore:
    """Local groups and their direct memberships.

    ``save_group`` writes the group's name and replaces its direct members with
    ``group.members``. Nested membership is answered by walking the stored
    edges breadth-first, so cycles between local groups terminate.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def save_group(self, group: Group) -> Group:
        if group.id is not None and is_directory_id(group.id):
            raise ValueError(f"group id {group.id} lies in the directory id range")
        existing = self._group_id_by_name(group.name)
        if existing is not None and existing != group.id:
            raise ValueError(f"a local group named {group.name!r} already exists")

        if group.id is None:
            result = self.session.execute(insert(_groups).values(name=group.name))
            group.id = cast(int, result.inserted_primary_key[0])
            log.debug("Created local group %r with id %s", group.name, group.id)
        elif self.group_exists(group.id):
            self.session.execute(
                update(_groups).where(_groups.c.id == group.id).values(name=group.name)
            )
        else:
            self.session.execute(insert(_groups).values(id=group.id, name=group.name))

        self.session.execute(delete(_members).where(_members.c.group_id == group.id))
        self._insert_members(group.id, group.members)
        return group

    def delete_group(self, group_id: int) -> None:
        self._require_group(group_id)
        self.session.execute(delete(_members).where(_members.c.group_id == group_id))
        # references to the group from other groups go as well
        self.session.execute(
            delete(_members)
            .where(_members.c.member_id == group_id)
            .where(_members.c.member_kind == MemberKind.GROUP)
        )
        self.session.execute(delete(_groups).where(_groups.c.id == group_id))

    def get_group_by_id(self, group_id: int) -> Group | None:
        row = self.session.execute(select(_groups).where(_groups.c.id == group_id)).first()
        if row is None:
            return None
        return self._to_group(row.id, row.name, self._load_members([row.id]))

    def get_group_by_name(self, name: str) -> Group | None:
        row = self.session.execute(select(_groups).where(_groups.c.name == name)).first()
        if row is None:
            return None
        return self._to_group(row.id, row.name, self._load_members([row.id]))

    def list_groups(self) -> list[Group]:
        rows = self.session.execute(select(_groups).order_by(_groups.c.id)).all()
        members = self._load_members([row.id for row in rows])
        return [self._to_group(row.id, row.name, members) for row in rows]

    def add_member(self, group_id: int, member_id: int, kind: MemberKind) -> None:
        self._require_group(group_id)
        if kind is MemberKind.GROUP:
            if member_id == group_id:
                raise ValueError(f"group {group_id} cannot contain itself")
            if not is_directory_id(member_id):
                self._require_group(member_id)
        if self._has_direct_member(group_id, member_id, kind):
            return
        self.session.execute(
            insert(_members).values(group_id=group_id, member_id=member_id, member_kind=kind)
        )

    def remove_member(self, group_id: int, member_id: int, kind: MemberKind) -> None:
        self._require_group(group_id)
        self.session.execute(
            delete(_members)
            .where(_members.c.group_id == group_id)
            .where(_members.c.member_id == member_id)
            .where(_members.c.member_kind == kind)
        )

    def remove_all_members(self, group_id: int) -> None:
        self._require_group(group_id)
        self.session.execute(delete(_members).where(_members.c.group_id == group_id))

    def members_of(self, group_id: int, kind: MemberKind) -> list[int]:
        stmt = (
            select(_members.c.member_id)
            .where(_members.c.group_id == group_id)
            .where(_members.c.member_kind == kind)
            .order_by(_members.c.member_id)
        )
        return list(self.session.execute(stmt).scalars())

    def groups_of_member(self, member_id: int, kind: MemberKind) -> list[GroupRef]:
        stmt = (
            select(_groups.c.id, _groups.c.name)
            .join(_members, _members.c.group_id == _groups.c.id)
            .where(_members.c.member_id == member_id)
            .where(_members.c.member_kind == kind)
            .order_by(_groups.c.id)
        )
        return [GroupRef(id=row.id, name=row.name) for row in self.session.execute(stmt)]

    def has_member(
        self,
        parent_id: int,
        child_id: int,
        kind: MemberKind,
        *,
        recursive: bool,
    ) -> bool:
        if self._has_direct_member(parent_id, child_id, kind):
            return True
        if not recursive:
            return False

        visited = {parent_id}
        frontier = deque(self.members_of(parent_id, MemberKind.GROUP))
        while frontier:
            group_id = frontier.popleft()
            if group_id in visited:
                continue
            visited.add(group_id)
            if self._has_direct_member(group_id, child_id, kind):
                return True
            frontier.extend(self.members_of(group_id, MemberKind.GROUP))
        return False

    def group_exists(self, group_id: int) -> bool:
        stmt = select(_groups.c.id).where(_groups.c.id == group_id)
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def search_matching(self, fragment: str) -> dict[str, int]:
        stmt = (
            select(_groups.c.name, _groups.c.id)
            .where(func.lower(_groups.c.name).contains(fragment.lower(), autoescape=True))
            .order_by(_groups.c.name)
        )
        return {row.name: row.id for row in self.session.execute(stmt)}

    def _require_group(self, group_id: int) -> None:
        if not self.group_exists(group_id):
            raise GroupNotFoundError(group_id)

    def _group_id_by_name(self, name: str) -> int | None:
        stmt = select(_groups.c.id).where(_groups.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def _has_direct_member(self, group_id: int, member_id: int, kind: MemberKind) -> bool:
        stmt = (
            select(_members.c.group_id)
            .where(_members.c.group_id == group_id)
            .where(_members.c.member_id == member_id)
            .where(_members.c.member_kind == kind)
        )
        return self.session.execute(stmt).first() is not None

    def _insert_members(self, group_id: int, members: Iterable[Member]) -> None:
        rows = [
            {"group_id": group_id, "member_id": member.member_id, "member_kind": member.kind}
            for member in members
        ]
        if rows:
            self.session.execute(insert(_members), rows)

    def _load_members(self, group_ids: list[int]) -> dict[int, set[Member]]:
        loaded: defaultdict[int, set[Member]] = defaultdict(set)
        if not group_ids:
            return loaded
        stmt = select(_members).where(_members.c.group_id.in_(group_ids))
        for row in self.session.execute(stmt):
            loaded[row.group_id].add(Member(member_id=row.member_id, kind=row.member_kind))
        return loaded

    @staticmethod
    def _to_group(group_id: int, name: str, members: dict[int, set[Member]]) -> Group:
        return Group(name=name, id=group_id, members=set(members.get(group_id, ())))


class SqlAlchemyUserAccounts:
    def __init__(self, session: Session) -> None:
        self.session = session

    def username_to_id(self, name: str) -> int | None:
        stmt = select(user_account_table.c.id).where(user_account_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def id_to_username(self, user_id: int) -> str | None:
        stmt = select(user_account_table.c.name).where(user_account_table.c.id == user_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def create_user(self, name: str) -> int:
        existing = self.username_to_id(name)
        if existing is not None:
            return existing
        result = self.session.execute(insert(user_account_table).values(name=name))
        return cast(int, result.inserted_primary_key[0])


class SqlAlchemyDnMappingRepository:
    """Append-only DN ledger.

    Without a ``session_factory`` every allocation runs in a SAVEPOINT of the
    request session. SQLite admits one writer per database, so a second
    connection would wait on the request's own write lock. With a
    ``session_factory`` each allocation commits in its own short transaction
    and survives a rollback of the surrounding request. Concurrent
    allocations of the same DN converge on the row that was inserted first.
    """

    def __init__(
        self,
        session: Session,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        self.session = session
        self._session_factory = session_factory

    def get_row_id(self, dn: str) -> int | None:
        stmt = select(directory_group_id_map_table.c.id).where(
            directory_group_id_map_table.c.dn == dn
        )
        return self._scalar(stmt)

    def get_dn(self, row_id: int) -> str | None:
        stmt = select(directory_group_id_map_table.c.dn).where(
            directory_group_id_map_table.c.id == row_id
        )
        return self._scalar(stmt)

    def insert_or_get(self, dn: str) -> int:
        try:
            if self._session_factory is None:
                with self.session.begin_nested():
                    self.session.execute(self._insert_ignoring_duplicates(self.session, dn))
            else:
                with self._session_factory.begin() as session:
                    session.execute(self._insert_ignoring_duplicates(session, dn))
        except IntegrityError:
            log.debug("DN %s was allocated concurrently", dn)
        row_id = self.get_row_id(dn)
        if row_id is None:
            raise RuntimeError(f"Could not allocate a directory mapping for {dn}")
        return row_id

    def _scalar[T](self, stmt: Select[tuple[T]]) -> T | None:
        if self._session_factory is None:
            return self.session.execute(stmt).scalar_one_or_none()
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _insert_ignoring_duplicates(session: Session, dn: str) -> Insert:
        table = directory_group_id_map_table
        match session.get_bind().dialect.name:
            case "sqlite":
                return (
                    sqlite.insert(table)
                    .values(dn=dn)
                    .on_conflict_do_nothing(index_elements=[table.c.dn])
                )
            case "postgresql":
                return (
                    postgresql.insert(table)
                    .values(dn=dn)
                    .on_conflict_do_nothing(index_elements=[table.c.dn])
                )
            case _:
                return insert(table).values(dn=dn)


if TYPE_CHECKING:
    from groupbridge.domain.ports import DnMappingRepository, LocalGroupStore, UserAccounts

    _session_stub = cast("Session", object())
    _group_store_check: LocalGroupStore = SqlAlchemyLocalGroupStore(_session_stub)
    _user_accounts_check: UserAccounts = SqlAlchemyUserAccounts(_session_stub)
    _dn_mapping_check: DnMappingRepository = SqlAlchemyDnMappingRepository(_session_stub)

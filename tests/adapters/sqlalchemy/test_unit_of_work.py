from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from groupbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGroupUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)
from groupbridge.domain.model import Group, MemberKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyGroupUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:")
    engine_b = create_engine("sqlite+pysqlite:///:memory:")

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert is_started()

    with SqlAlchemyGroupUnitOfWork() as uow:
        assert uow.session.get_bind() is engine_b


def test_startup_migrates_schema(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    tables = set(inspect(sqlite_engine).get_table_names())

    assert {
        "local_group",
        "local_group_member",
        "user_account",
        "directory_group_id_map",
        "alembic_version",
    } <= tables


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyGroupUnitOfWork() as uow:
        group = uow.repositories.groups.save_group(Group(name="ops"))
        user_id = uow.repositories.users.create_user("Alice")
        assert group.id is not None
        uow.repositories.groups.add_member(group.id, user_id, MemberKind.USER)
        uow.commit()

    with pytest.raises(RuntimeError, match="boom"), SqlAlchemyGroupUnitOfWork() as uow:
        uow.repositories.groups.save_group(Group(name="discarded"))
        raise RuntimeError("boom")

    with SqlAlchemyGroupUnitOfWork() as uow:
        groups = uow.repositories.groups
        assert [g.name for g in groups.list_groups()] == ["ops"]
        assert groups.members_of(group.id, MemberKind.USER) == [user_id]


def test_session_is_released_after_exit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyGroupUnitOfWork()

    with uow:
        pass

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_directory_allocation_after_local_write_in_one_request(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyGroupUnitOfWork() as uow:
        uow.repositories.groups.save_group(Group(name="ops"))
        row_id = uow.repositories.dn_mappings.insert_or_get("cn=staff,dc=example,dc=org")
        assert uow.repositories.dn_mappings.get_dn(row_id) == "cn=staff,dc=example,dc=org"
        uow.commit()

    with SqlAlchemyGroupUnitOfWork() as uow:
        assert uow.repositories.dn_mappings.get_row_id("cn=staff,dc=example,dc=org") == row_id
        assert uow.repositories.groups.get_group_by_name("ops") is not None

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from groupbridge.adapters.sqlalchemy.migrations import upgrade_head
from groupbridge.adapters.sqlalchemy.repositories import (
    SqlAlchemyLocalGroupStore,
    SqlAlchemyUserAccounts,
)
from groupbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGroupUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.directory import FakeDirectory, make_directory_config

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from groupbridge.config import DirectoryConfig


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed so that every connection sees the same database
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'groupbridge.db'}",
        connect_args={"timeout": 30},
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_session(sqlite_session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = sqlite_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def local_store(sqlite_session: Session) -> SqlAlchemyLocalGroupStore:
    return SqlAlchemyLocalGroupStore(sqlite_session)


@pytest.fixture
def user_accounts(sqlite_session: Session) -> SqlAlchemyUserAccounts:
    return SqlAlchemyUserAccounts(sqlite_session)


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyGroupUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyGroupUnitOfWork:
        return SqlAlchemyGroupUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def directory_config() -> DirectoryConfig:
    return make_directory_config()

"""SQLAlchemy-backed unit of work for the group resolver."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from groupbridge.adapters.sqlalchemy.migrations import upgrade_head
from groupbridge.adapters.sqlalchemy.repositories import (
    SqlAlchemyDnMappingRepository,
    SqlAlchemyLocalGroupStore,
    SqlAlchemyUserAccounts,
)
from groupbridge.config.storage import get_database_config
from groupbridge.domain.ports import GroupRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when a unit of work is requested before ``startup()``."""


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create the engine, migrate the schema to head and prepare sessions."""

    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None and not force:
        raise StartupError("Group storage already started. Pass force=True to reconfigure.")

    resolved_engine = engine or create_engine(database_uri or get_database_config().uri)
    upgrade_head(engine=resolved_engine)
    _engine = resolved_engine
    _session_factory = sessionmaker(bind=resolved_engine, expire_on_commit=False)


def is_started() -> bool:
    return _engine is not None


def shutdown() -> None:
    """Dispose the managed engine and forget the session factory."""

    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


class SqlAlchemyGroupUnitOfWork:
    """One request against the group store.

    Local groups and user accounts share the request session. On SQLite the
    DN ledger shares it too and allocates inside savepoints; on server
    databases it commits every allocation through a session of its own.
    """

    def __init__(self) -> None:
        if _session_factory is None:
            raise StartupError(
                "Group storage not started. Call groupbridge.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        self.session_factory = _session_factory
        self._session: Session | None = None
        self._repositories: GroupRepositories | None = None

    def __enter__(self) -> SqlAlchemyGroupUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already open")
        session = self.session_factory()
        ledger_factory = None if _is_sqlite(session) else self.session_factory
        self._session = session
        self._repositories = GroupRepositories(
            groups=SqlAlchemyLocalGroupStore(session),
            users=SqlAlchemyUserAccounts(session),
            dn_mappings=SqlAlchemyDnMappingRepository(session, ledger_factory),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> GroupRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


def _is_sqlite(session: Session) -> bool:
    return session.get_bind().dialect.name == "sqlite"


if TYPE_CHECKING:
    from groupbridge.domain.ports import GroupUnitOfWork

    _uow_check: GroupUnitOfWork = SqlAlchemyGroupUnitOfWork()

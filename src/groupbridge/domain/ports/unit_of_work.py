"""Unit-of-work boundary for one resolver request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from groupbridge.domain.ports.persistence import (
        DnMappingRepository,
        LocalGroupStore,
        UserAccounts,
    )


@dataclass(slots=True)
class GroupRepositories:
    """Repositories backing one resolver request.

    ``groups`` and ``users`` write through the unit of work's session and are
    discarded on rollback. Whether ``dn_mappings`` allocations outlive a
    rollback depends on the backend.
    """

    groups: LocalGroupStore
    users: UserAccounts
    dn_mappings: DnMappingRepository


@runtime_checkable
class GroupUnitOfWork(Protocol):
    @property
    def repositories(self) -> GroupRepositories: ...

    def __enter__(self) -> GroupUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

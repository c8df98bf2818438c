"""ldap3-backed directory client."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal, Protocol

from ldap3 import ALL_ATTRIBUTES, BASE, LEVEL, NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from groupbridge.domain.errors import DirectoryUnavailableError
from groupbridge.domain.model import SearchScope

from .schema import parse_search_response

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from groupbridge.config.directory import DirectoryConfig
    from groupbridge.domain.ports import DirectoryEntry

log = getLogger(__name__)

_LDAP3_SCOPES: dict[SearchScope, str] = {
    SearchScope.BASE: BASE,
    SearchScope.LEVEL: LEVEL,
    SearchScope.SUBTREE: SUBTREE,
}


class LdapConnection(Protocol):
    """Subset of ``ldap3.Connection`` used by the client."""

    response: Any
    result: Any

    def bind(self) -> bool: ...

    def search(
        self,
        search_base: str,
        search_filter: str,
        search_scope: str = ...,
        attributes: Any = ...,
    ) -> bool: ...

    def unbind(self) -> bool: ...


type ConnectionFactory = Callable[[DirectoryConfig, str | None, str | None], LdapConnection]


def _default_connection_factory(
    config: DirectoryConfig,
    user: str | None,
    password: str | None,
) -> LdapConnection:
    server = Server(config.uri, get_info=NONE, connect_timeout=config.timeout_seconds)
    return Connection(
        server,
        user=user,
        password=password,
        read_only=True,
        raise_exceptions=False,
        receive_timeout=config.timeout_seconds,
    )


class Ldap3DirectoryClient:
    """Directory search primitive with a lazily bound, reusable connection.

    The first search binds, preferring the configured proxy agent and falling
    back to an anonymous bind. When no bind succeeds, or a search fails on the
    wire, the client answers with no entries so that callers keep working on
    local data. A failed bind is retried on the next search.
    """

    def __init__(
        self,
        *,
        config: DirectoryConfig,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self._config = config
        self._connection_factory = connection_factory or _default_connection_factory
        self._connection: LdapConnection | None = None

    @property
    def bound(self) -> bool:
        return self._connection is not None

    def ensure_bound(self) -> bool:
        """Bind once; later calls are no-ops while the connection is held."""

        if self._connection is not None:
            return True
        try:
            self._connection = self._bind()
        except DirectoryUnavailableError as exc:
            log.warning("Directory unavailable, continuing without it: %s", exc)
            return False
        return True

    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Sequence[str] = (),
        *,
        scope: SearchScope = SearchScope.SUBTREE,
    ) -> list[DirectoryEntry]:
        if not self.ensure_bound() or self._connection is None:
            return []
        connection = self._connection
        try:
            found = connection.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=_LDAP3_SCOPES[scope],
                attributes=list(attributes) if attributes else ALL_ATTRIBUTES,
            )
        except LDAPException as exc:
            log.warning(
                "Directory search failed (base=%s, filter=%s): %s", base_dn, search_filter, exc
            )
            self._drop_connection()
            return []
        if not found:
            log.debug("No entries returned for base=%s, filter=%s", base_dn, search_filter)
            return []
        response: Sequence[Mapping[str, object]] = connection.response or []
        return parse_search_response(response)

    def close(self) -> None:
        self._drop_connection()

    def __enter__(self) -> Ldap3DirectoryClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False

    def _bind(self) -> LdapConnection:
        proxy = self._config.proxy_agent
        if proxy is not None:
            log.debug("Binding to %s as the proxy agent", self._config.uri)
            connection = self._open(proxy.user, proxy.password)
            if connection is not None:
                return connection
            log.warning("Proxy agent bind failed, falling back to an anonymous bind")
        connection = self._open(None, None)
        if connection is None:
            raise DirectoryUnavailableError(f"Could not bind to {self._config.uri}")
        return connection

    def _open(self, user: str | None, password: str | None) -> LdapConnection | None:
        try:
            connection = self._connection_factory(self._config, user, password)
            if connection.bind():
                return connection
        except LDAPException as exc:
            log.warning("Could not reach directory server %s: %s", self._config.uri, exc)
            return None
        result = connection.result if isinstance(connection.result, dict) else {}
        log.warning("Directory bind rejected: %s", result.get("description", "unknown"))
        return None

    def _drop_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            connection.unbind()
        except LDAPException as exc:
            log.debug("Ignoring error while unbinding: %s", exc)

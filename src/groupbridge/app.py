"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager, ExitStack, contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, cast

from groupbridge.adapters.ldap import DirectoryGroupTranslator, Ldap3DirectoryClient
from groupbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGroupUnitOfWork,
    is_started,
    startup,
)
from groupbridge.config import get_directory_config
from groupbridge.domain.identifiers import IdentifierMapper
from groupbridge.domain.model import Group, GroupRef, MemberKind
from groupbridge.domain.ports.unit_of_work import GroupUnitOfWork
from groupbridge.domain.resolver import HybridGroupResolver, ResolverPolicy

if TYPE_CHECKING:
    from collections.abc import Iterator

    from groupbridge.config.directory import DirectoryConfig
    from groupbridge.domain.ports import DirectoryClient, GroupRepositories

UnitOfWorkFactory = Callable[[], GroupUnitOfWork]
ResolverFactory = Callable[[], AbstractContextManager[HybridGroupResolver]]

log = getLogger(__name__)


def build_resolver(
    repositories: GroupRepositories,
    *,
    client: DirectoryClient,
    config: DirectoryConfig,
) -> HybridGroupResolver:
    """Wire a resolver over one repository collection and a directory client."""

    mapper = IdentifierMapper(repositories.dn_mappings)
    translator = DirectoryGroupTranslator(client=client, mapper=mapper, config=config)
    policy = ResolverPolicy(
        allow_directory_group_members=config.allow_directory_group_members,
        lowercase_usernames=config.lowercase_usernames,
    )
    return HybridGroupResolver(
        local_store=repositories.groups,
        directory=translator,
        mapper=mapper,
        users=repositories.users,
        policy=policy,
    )


@contextmanager
def open_resolver(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    client: DirectoryClient | None = None,
    config: DirectoryConfig | None = None,
) -> Iterator[HybridGroupResolver]:
    """Yield a resolver bound to a fresh unit of work, committing on success."""

    effective_config = config or get_directory_config()
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyGroupUnitOfWork

    with ExitStack() as stack:
        if client is None:
            client = stack.enter_context(Ldap3DirectoryClient(config=effective_config))
        with unit_of_work_factory() as uow:
            yield build_resolver(uow.repositories, client=client, config=effective_config)
            uow.commit()


def list_groups(*, resolver_factory: ResolverFactory = open_resolver) -> list[Group]:
    with resolver_factory() as resolver:
        return resolver.get_groups()


def show_group(
    *,
    group_id: int | None = None,
    name: str | None = None,
    resolver_factory: ResolverFactory = open_resolver,
) -> Group | None:
    if (group_id is None) == (name is None):
        raise ValueError("Pass exactly one of group_id or name")
    with resolver_factory() as resolver:
        if name is not None:
            return resolver.get_group_by_name(name)
        return resolver.get_group_by_id(cast(int, group_id))


def check_membership(
    parent_id: int,
    child_id: int,
    kind: MemberKind,
    *,
    recursive: bool = True,
    resolver_factory: ResolverFactory = open_resolver,
) -> bool:
    with resolver_factory() as resolver:
        return resolver.is_member(parent_id, child_id, kind, recursive=recursive)


def is_overloaded(name: str, *, resolver_factory: ResolverFactory = open_resolver) -> bool:
    with resolver_factory() as resolver:
        return resolver.is_overloaded(name)


def search_groups(
    fragment: str,
    *,
    resolver_factory: ResolverFactory = open_resolver,
) -> dict[str, int]:
    with resolver_factory() as resolver:
        return resolver.search_matching_groups(fragment)


def list_members(
    group_id: int,
    kind: MemberKind,
    *,
    resolver_factory: ResolverFactory = open_resolver,
) -> list[int]:
    with resolver_factory() as resolver:
        return resolver.members_of(group_id, kind)


def list_memberships(
    member_id: int,
    kind: MemberKind,
    *,
    resolver_factory: ResolverFactory = open_resolver,
) -> list[GroupRef]:
    with resolver_factory() as resolver:
        return resolver.groups_of_member(member_id, kind)


def create_group(name: str, *, resolver_factory: ResolverFactory = open_resolver) -> Group:
    with resolver_factory() as resolver:
        group = resolver.save_group(Group(name=name))
    log.info("Created local group %r with id %s", group.name, group.id)
    return group


def delete_group(group_id: int, *, resolver_factory: ResolverFactory = open_resolver) -> None:
    with resolver_factory() as resolver:
        resolver.delete_group(group_id)
    log.info("Deleted local group %s", group_id)


def change_user_membership(
    group_id: int,
    user_id: int,
    *,
    remove: bool = False,
    resolver_factory: ResolverFactory = open_resolver,
) -> None:
    with resolver_factory() as resolver:
        if remove:
            resolver.remove_user_from_group(group_id, user_id)
        else:
            resolver.add_user_to_group(group_id, user_id)


def change_group_membership(
    parent_id: int,
    child_id: int,
    *,
    remove: bool = False,
    resolver_factory: ResolverFactory = open_resolver,
) -> None:
    with resolver_factory() as resolver:
        if remove:
            resolver.remove_group_from_group(parent_id, child_id)
        else:
            resolver.add_group_to_group(parent_id, child_id)


def import_users(*, resolver_factory: ResolverFactory = open_resolver) -> list[str]:
    with resolver_factory() as resolver:
        return resolver.import_directory_users()

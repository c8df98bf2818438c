# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from groupbridge.app import (
    change_group_membership,
    change_user_membership,
    check_membership,
    create_group,
    delete_group,
    import_users,
    is_overloaded,
    list_groups,
    list_members,
    list_memberships,
    search_groups,
    show_group,
)
from groupbridge.config import ConfigurationError, configure_logging
from groupbridge.domain.errors import GroupDirectoryError
from groupbridge.domain.model import MemberKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from groupbridge.domain.model import Group

log = logging.getLogger(__name__)


def _add_kind_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in MemberKind],
        default=MemberKind.USER.value,
        help="Member kind (default: %(default)s)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve local and directory groups")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("groups", help="List directory root groups and local groups")

    show = subparsers.add_parser("show", help="Show one group")
    target = show.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", type=int, dest="group_id", help="Group id")
    target.add_argument("--name", type=str, help="Group name")

    is_member = subparsers.add_parser("is-member", help="Test group membership")
    is_member.add_argument("parent_id", type=int, help="Id of the containing group")
    is_member.add_argument("child_id", type=int, help="Id of the user or group to test")
    _add_kind_argument(is_member)
    is_member.add_argument(
        "--direct",
        action="store_true",
        help="Only consider direct membership",
    )

    overloaded = subparsers.add_parser(
        "overloaded",
        help="Check whether a name exists both locally and in the directory",
    )
    overloaded.add_argument("name", type=str)

    search = subparsers.add_parser("search", help="Find groups whose name contains a fragment")
    search.add_argument("fragment", type=str)

    members = subparsers.add_parser("members", help="List the direct members of a group")
    members.add_argument("group_id", type=int)
    _add_kind_argument(members)

    memberships = subparsers.add_parser(
        "memberships",
        help="List the groups a user or group belongs to",
    )
    memberships.add_argument("member_id", type=int)
    _add_kind_argument(memberships)

    create = subparsers.add_parser("create-group", help="Create a local group")
    create.add_argument("name", type=str)

    delete = subparsers.add_parser("delete-group", help="Delete a local group")
    delete.add_argument("group_id", type=int)

    add_user = subparsers.add_parser("add-user", help="Add a user to a local group")
    add_user.add_argument("group_id", type=int)
    add_user.add_argument("user_id", type=int)
    add_user.add_argument("--remove", action="store_true", help="Remove instead of add")

    add_group = subparsers.add_parser("add-group", help="Nest a group inside a local group")
    add_group.add_argument("parent_id", type=int)
    add_group.add_argument("child_id", type=int)
    add_group.add_argument("--remove", action="store_true", help="Remove instead of add")

    subparsers.add_parser(
        "import-users",
        help="Create local accounts for directory users that have none",
    )

    return parser.parse_args(list(argv))


def _format_group(group: Group) -> str:
    return f"{group.id}\t{group.name}\t{group.origin.value}"


def _run(args: argparse.Namespace) -> None:  # noqa: C901, PLR0912
    if args.command == "groups":
        for group in list_groups():
            print(_format_group(group))
    elif args.command == "show":
        group = show_group(group_id=args.group_id, name=args.name)
        if group is None:
            raise LookupError("No such group")
        print(_format_group(group))
        if group.dn:
            print(f"dn\t{group.dn}")
        for member in sorted(group.members, key=lambda m: (m.kind.value, m.member_id)):
            print(f"{member.kind.value}\t{member.member_id}")
    elif args.command == "is-member":
        found = check_membership(
            args.parent_id,
            args.child_id,
            MemberKind(args.kind),
            recursive=not args.direct,
        )
        print("yes" if found else "no")
    elif args.command == "overloaded":
        print("yes" if is_overloaded(args.name) else "no")
    elif args.command == "search":
        for name, group_id in sorted(search_groups(args.fragment).items()):
            print(f"{group_id}\t{name}")
    elif args.command == "members":
        for member_id in list_members(args.group_id, MemberKind(args.kind)):
            print(member_id)
    elif args.command == "memberships":
        for ref in list_memberships(args.member_id, MemberKind(args.kind)):
            print(f"{ref.id}\t{ref.name}")
    elif args.command == "create-group":
        group = create_group(args.name)
        print(group.id)
    elif args.command == "delete-group":
        delete_group(args.group_id)
    elif args.command == "add-user":
        change_user_membership(args.group_id, args.user_id, remove=args.remove)
    elif args.command == "add-group":
        change_group_membership(args.parent_id, args.child_id, remove=args.remove)
    elif args.command == "import-users":
        for name in import_users():
            print(name)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _run(parsed_args)
    except (ValueError, ConfigurationError, GroupDirectoryError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

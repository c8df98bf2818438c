from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from groupbridge.domain.errors import ImmutableEntityError, NameCollisionError
from groupbridge.domain.model import (
    DIRECTORY_ID_OFFSET,
    Group,
    GroupOrigin,
    GroupRef,
    Member,
    MemberKind,
)
from groupbridge.ui import cli

if TYPE_CHECKING:
    from collections.abc import Callable


def _capture(monkeypatch: pytest.MonkeyPatch, name: str, result: object) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake(*args: object, **kwargs: object) -> object:
        captured["args"] = args
        captured.update(kwargs)
        return result

    monkeypatch.setattr(cli, name, fake)
    return captured


def test_groups_lists_id_name_and_origin(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    staff = Group(
        name="staff",
        id=DIRECTORY_ID_OFFSET + 1,
        origin=GroupOrigin.DIRECTORY,
        dn="cn=staff,dc=example,dc=org",
    )
    _capture(monkeypatch, "list_groups", [staff, Group(name="ops", id=2)])

    cli.main(["groups"])

    assert capsys.readouterr().out.splitlines() == [
        f"{DIRECTORY_ID_OFFSET + 1}\tstaff\tdirectory",
        "2\tops\tlocal",
    ]


def test_show_prints_members(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    group = Group(
        name="ops",
        id=2,
        members={Member(9, MemberKind.USER), Member(3, MemberKind.GROUP)},
    )
    captured = _capture(monkeypatch, "show_group", group)

    cli.main(["show", "--name", "ops"])

    assert captured["name"] == "ops"
    assert captured["group_id"] is None
    assert capsys.readouterr().out.splitlines() == ["2\tops\tlocal", "group\t3", "user\t9"]


def test_show_unknown_group_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    _capture(monkeypatch, "show_group", None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["show", "--id", "5"])

    assert excinfo.value.code == 1


def test_show_rejects_both_selectors() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["show", "--id", "5", "--name", "ops"])

    assert excinfo.value.code == 2


def test_is_member_passes_kind_and_recursion(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    captured = _capture(monkeypatch, "check_membership", True)

    cli.main(["is-member", "2", "7", "--kind", "group", "--direct"])

    assert captured["args"] == (2, 7, MemberKind.GROUP)
    assert captured["recursive"] is False
    assert capsys.readouterr().out.strip() == "yes"


@pytest.mark.parametrize(
    ("argv", "name", "result", "expected"),
    [
        (["overloaded", "staff"], "is_overloaded", False, ["no"]),
        (["search", "eng"], "search_groups", {"engineering": 1000001, "engine": 3}, [
            "3\tengine",
            "1000001\tengineering",
        ]),
        (["members", "2"], "list_members", [7, 8], ["7", "8"]),
        (["memberships", "7"], "list_memberships", [GroupRef(2, "ops")], ["2\tops"]),
        (["create-group", "ops"], "create_group", Group(name="ops", id=4), ["4"]),
        (["import-users"], "import_users", ["Alice", "Bob"], ["Alice", "Bob"]),
    ],
)
def test_read_commands_print_results(  # noqa: PLR0913
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    argv: list[str],
    name: str,
    result: object,
    expected: list[str],
) -> None:
    _capture(monkeypatch, name, result)

    cli.main(argv)

    assert capsys.readouterr().out.splitlines() == expected


@pytest.mark.parametrize(
    ("argv", "name", "check"),
    [
        (
            ["add-user", "2", "7"],
            "change_user_membership",
            lambda c: c["args"] == (2, 7) and c["remove"] is False,
        ),
        (
            ["add-group", "2", "3", "--remove"],
            "change_group_membership",
            lambda c: c["args"] == (2, 3) and c["remove"] is True,
        ),
        (["delete-group", "2"], "delete_group", lambda c: c["args"] == (2,)),
    ],
)
def test_write_commands_forward_arguments(
    monkeypatch: pytest.MonkeyPatch,
    argv: list[str],
    name: str,
    check: Callable[[dict[str, object]], bool],
) -> None:
    captured = _capture(monkeypatch, name, None)

    cli.main(argv)

    assert check(captured)


def test_validation_errors_exit_with_code_two(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_create(*_: object, **__: object) -> None:
        raise ValueError("a local group named 'ops' already exists")

    monkeypatch.setattr(cli, "create_group", fake_create)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["create-group", "ops"])

    assert excinfo.value.code == 2


def test_policy_rejections_exit_with_code_two_without_traceback(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def fake_delete(*_: object, **__: object) -> None:
        raise ImmutableEntityError(DIRECTORY_ID_OFFSET + 1)

    def fake_create(*_: object, **__: object) -> None:
        raise NameCollisionError("staff")

    monkeypatch.setattr(cli, "delete_group", fake_delete)
    monkeypatch.setattr(cli, "create_group", fake_create)

    for argv in (["delete-group", str(DIRECTORY_ID_OFFSET + 1)], ["create-group", "staff"]):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(argv)
        assert excinfo.value.code == 2

    errors = [record for record in caplog.records if record.levelname == "ERROR"]
    assert len(errors) == 2
    assert all(record.exc_info is None for record in errors)


def test_failures_exit_with_code_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_list(*_: object, **__: object) -> None:
        raise RuntimeError("database is locked")

    monkeypatch.setattr(cli, "list_groups", fake_list)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["groups"])

    assert excinfo.value.code == 1

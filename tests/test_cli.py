"""CLI parser behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dotbot_awareness.cli import _build_parser, _request_for, main


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "structure"])
    assert args.verbose is True
    assert args.command == "structure"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["health", "--verbose"])
    assert args.verbose is True
    assert args.command == "health"
    assert args.level == "standard"


def test_cli_rejects_unknown_level() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["health", "--level", "exhaustive"])


def test_cli_register_collects_repeated_tags() -> None:
    parser = _build_parser()
    args = parser.parse_args(["register", "Acme.Api", "--alias", "api", "--tag", "core", "--tag", "http"])
    operation, request = _request_for(args)
    assert operation == "solution.project.register"
    assert request["name"] == "Acme.Api"
    assert request["alias"] == "api"
    assert request["tags"] == ["core", "http"]


def test_cli_prints_envelope(tmp_path: Path, capsys) -> None:
    (tmp_path / ".bot").mkdir()
    (tmp_path / "package.json").write_text('{"name": "web", "dependencies": {"express": "4"}}', encoding="utf-8")

    main(["structure", "--path", str(tmp_path)])

    envelope = json.loads(capsys.readouterr().out)
    assert envelope["operation"] == "solution.structure"
    assert envelope["status"] == "ok"
    assert envelope["data"]["projects"][0]["alias"] == "be"


def test_cli_exits_non_zero_on_error(tmp_path: Path, capsys) -> None:
    (tmp_path / ".bot").mkdir()
    with pytest.raises(SystemExit) as excinfo:
        main(["unregister", "Missing", "--path", str(tmp_path)])
    assert excinfo.value.code == 1
    envelope = json.loads(capsys.readouterr().out)
    assert envelope["errors"][0]["code"] == "PROJECT_NOT_FOUND"

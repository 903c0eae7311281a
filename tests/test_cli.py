from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from gator.cli import main


@pytest.fixture
def base_args(tmp_path: Path) -> List[str]:
    return ["--config", str(tmp_path / "gatorconfig.json"), "--db", str(tmp_path / "gator.sqlite3")]


def test_register_and_list(base_args: List[str], capsys: pytest.CaptureFixture) -> None:
    assert main(base_args + ["register", "alice"]) == 0
    assert main(base_args + ["users"]) == 0

    out = capsys.readouterr().out
    assert "User alice created" in out
    assert "* alice (current)" in out


def test_unknown_command_exits_1(base_args: List[str], capsys: pytest.CaptureFixture) -> None:
    assert main(base_args + ["frobnicate"]) == 1
    assert "Command failed: unknown command" in capsys.readouterr().err


def test_handler_error_exits_1(base_args: List[str], capsys: pytest.CaptureFixture) -> None:
    assert main(base_args + ["login", "nobody"]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_missing_command(base_args: List[str]) -> None:
    assert main(base_args) == 1


def test_show_config(base_args: List[str], capsys: pytest.CaptureFixture) -> None:
    assert main(base_args + ["--show-config"]) == 0
    assert "current user: (none)" in capsys.readouterr().out


def test_blank_username_exits_1(base_args: List[str], capsys: pytest.CaptureFixture) -> None:
    assert main(base_args + ["register", ""]) == 1
    assert "Command failed: usage: register <username>" in capsys.readouterr().err

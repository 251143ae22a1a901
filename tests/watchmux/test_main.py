from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from watchmux import __version__
from watchmux.main import EXIT_CONFIG, EXIT_FAILED, app


runner = CliRunner()


def _write_yaml(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_runs_config_file(tmp_path: Path) -> None:
    config = _write_yaml(
        tmp_path / "mux.yaml",
        "processes:\n  - {title: a, cmd: echo hello}\n  - {title: b, cmd: echo world}\n",
    )
    result = runner.invoke(app, ["-c", str(config)])

    assert result.exit_code == 0, result.output
    assert "[ a ]" in result.stdout
    assert "hello" in result.stdout
    assert "world" in result.stdout


def test_failed_process_sets_exit_code_and_names_title(tmp_path: Path) -> None:
    config = _write_yaml(
        tmp_path / "mux.yaml",
        "processes:\n  - {title: ok, cmd: echo fine}\n  - {title: bad, cmd: 'false'}\n",
    )
    result = runner.invoke(app, ["--config", str(config)])

    assert result.exit_code == EXIT_FAILED
    assert "fine" in result.stdout
    assert "[ bad ] exited with status 1" in result.output


def test_config_from_stdin() -> None:
    result = runner.invoke(
        app, ["-c", "-"], input="processes:\n  - {title: s, cmd: echo piped}\n"
    )

    assert result.exit_code == 0, result.output
    assert "piped" in result.stdout


def test_missing_rc_file_is_config_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, [])

    assert result.exit_code == EXIT_CONFIG
    assert ".watchmuxrc.yaml" in result.output


def test_shell_setting_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WATCHMUX_SHELL", "sh")
    monkeypatch.chdir(tmp_path)
    _write_yaml(
        tmp_path / ".watchmuxrc.yaml",
        "processes:\n  - title: sh\n    cmd: echo \"$0 ran\"\n    type: shell\n",
    )
    result = runner.invoke(app, [])

    assert result.exit_code == 0, result.output
    assert "sh ran" in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output

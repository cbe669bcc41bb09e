from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from xenforo_sync import __version__
from xenforo_sync.main import make_parser, run

if TYPE_CHECKING:
    from pathlib import Path


def _run(tmp_cwd: Path, *args: str) -> str | int | None:
    return run(["--config-file", str(tmp_cwd / "settings.yaml"), "--database", str(tmp_cwd / "sync.db"), *args])


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        run(["--version"])
    assert f"xenforo-sync {__version__}" in capsys.readouterr().out


def test_command_is_required(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        make_parser().parse_args([])
    assert exc_info.value.code == 2
    assert "command" in capsys.readouterr().err


@pytest.mark.parametrize("cookie", ["xf_user", "=value"])
def test_invalid_cookie_argument(cookie: str) -> None:
    with pytest.raises(SystemExit):
        make_parser().parse_args(["sync-posts", "1", "10", "--cookie", cookie])


def test_cookie_arguments() -> None:
    args = make_parser().parse_args(["download", "1", "thread-10", "--cookie", "a=1", "--cookie", "b=x=y", "--type", "video"])
    assert dict(args.cookies) == {"a": "1", "b": "x=y"}
    assert args.media_type == "video"


def test_add_site(tmp_cwd: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_cwd, "add-site", "https://forum.example.com/", "--name", "Example") == 0
    assert "Site #1: https://forum.example.com" in capsys.readouterr().out
    assert (tmp_cwd / "sync.db").is_file()
    assert (tmp_cwd / "settings.yaml").is_file()

    assert _run(tmp_cwd, "add-site", "https://forum.example.com") == 0
    assert "Site #1:" in capsys.readouterr().out


def test_add_invalid_site(tmp_cwd: Path, caplog: pytest.LogCaptureFixture) -> None:
    assert _run(tmp_cwd, "add-site", "forum.example.com") == 1
    assert "is not an absolute http(s) URL" in caplog.text


def test_invalid_config_file(tmp_cwd: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_cwd / "settings.yaml").write_text("http: [", encoding="utf8")
    assert _run(tmp_cwd, "jobs") == 1
    assert "is not a valid YAML file" in caplog.text


def test_failed_sync_is_recorded_as_a_job(tmp_cwd: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_cwd, "sync-forums", "7") == 1
    capsys.readouterr()

    assert _run(tmp_cwd, "jobs", "--status", "failed") == 0
    output = capsys.readouterr().out
    assert "sync_forums" in output
    assert "failed" in output

    assert _run(tmp_cwd, "jobs", "--status", "completed") == 0
    assert "sync_forums" not in capsys.readouterr().out

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from xenforo_sync import constants, env
from xenforo_sync.config import Settings, load_settings
from xenforo_sync.exceptions import InvalidYamlError


def test_missing_file_is_created_with_defaults(tmp_path: Path) -> None:
    file = tmp_path / "config" / "settings.yaml"
    settings = load_settings(file)

    assert settings == Settings()
    saved = yaml.safe_load(file.read_text(encoding="utf8"))
    assert saved["http"]["max_retries"] == constants.DEFAULT_MAX_RETRIES
    assert saved["rate_limiting"]["page_delay"] == constants.PAGE_DELAY
    assert saved["downloads"]["folder"] == "downloads"


def test_default_file_in_working_directory(tmp_cwd: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(env, "CONFIG_FILE", None)
    load_settings()
    assert (tmp_cwd / constants.DEFAULT_CONFIG_FILE).is_file()


def test_config_file_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    file = tmp_path / "from_env.yaml"
    file.write_text("http:\n  timeout: 7\n", encoding="utf8")
    monkeypatch.setattr(env, "CONFIG_FILE", str(file))
    assert load_settings().http.timeout == 7


def test_partial_file_is_completed(tmp_path: Path) -> None:
    file = tmp_path / "settings.yaml"
    file.write_text("HTTP:\n  timeout: 5\n  retry_statuses: [503, 500, 503]\nLogging:\n  level: debug\n", encoding="utf8")

    settings = load_settings(file)

    assert settings.http.timeout == 5
    assert settings.http.retry_statuses == [500, 503]
    assert settings.logging.level == 10
    assert settings.rate_limiting == Settings().rate_limiting
    saved = yaml.safe_load(file.read_text(encoding="utf8"))
    assert saved["http"]["timeout"] == 5
    assert "database" in saved


def test_download_delay_is_within_range(tmp_path: Path) -> None:
    file = tmp_path / "settings.yaml"
    file.write_text("rate_limiting:\n  download_delay_min: 1\n  download_delay_max: 2\n", encoding="utf8")
    rate_limiting = load_settings(file).rate_limiting
    assert all(1 <= rate_limiting.download_delay <= 2 for _ in range(20))


@pytest.mark.parametrize(
    "content",
    [
        "http: [",
        "http:\n  timeout: -1\n",
        "rate_limiting:\n  download_delay_min: 2\n  download_delay_max: 1\n",
    ],
)
def test_invalid_file(tmp_path: Path, content: str) -> None:
    file = tmp_path / "settings.yaml"
    file.write_text(content, encoding="utf8")
    with pytest.raises(InvalidYamlError) as exc_info:
        load_settings(file)
    assert str(file.name) in exc_info.value.message


def test_save_to_file(tmp_path: Path) -> None:
    file = tmp_path / "saved.yaml"
    settings = Settings()
    settings.downloads.folder = tmp_path / "media"
    settings.save_to_file(file)
    assert load_settings(file).downloads.folder == tmp_path / "media"

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from xenforo_sync import constants, env
from xenforo_sync.exceptions import InvalidYamlError

from .settings import (
    DatabaseSettings,
    DownloadSettings,
    HttpSettings,
    LoggingSettings,
    LoginSettings,
    RateLimitSettings,
    Settings,
    make_timeout,
)


def load_settings(file: Path | None = None) -> Settings:
    """Loads the settings from `file`, `$XFSYNC_CONFIG` or the default config file, in that order"""
    path = file or (Path(env.CONFIG_FILE) if env.CONFIG_FILE else constants.DEFAULT_CONFIG_FILE)
    try:
        return Settings.load_file(path)
    except ValidationError as e:
        raise InvalidYamlError(path, e) from None


__all__ = [
    "DatabaseSettings",
    "DownloadSettings",
    "HttpSettings",
    "LoggingSettings",
    "LoginSettings",
    "RateLimitSettings",
    "Settings",
    "load_settings",
    "make_timeout",
]

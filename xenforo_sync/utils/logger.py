from __future__ import annotations

import contextlib
import json
import logging
import sys
from functools import wraps
from pathlib import Path
from typing import IO, TYPE_CHECKING, ParamSpec

from rich.console import Console
from rich.logging import RichHandler

from xenforo_sync import constants, env
from xenforo_sync.exceptions import InvalidYamlError, XFSyncError

logger = logging.getLogger("xenforo_sync")
logger_debug = logging.getLogger("xenforo_sync_debug")
startup_logger = logging.getLogger("xenforo_sync_startup")
_DEFAULT_CONSOLE = Console()

_USER_NAME = Path.home().resolve().name


if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    _P = ParamSpec("_P")
    _ExitCode = str | int | None


class RedactedConsole(Console):
    """Custom console to remove username from logs"""

    def _render_buffer(self, buffer) -> str:
        output: str = super()._render_buffer(buffer)
        return _redact_message(output)


class JsonLogRecord(logging.LogRecord):
    def getMessage(self) -> str:  # noqa: N802
        """`dicts` will be logged as json, lazily"""

        msg = str(self._proccess_msg(self.msg))
        if self.args:
            args = tuple(map(self._proccess_msg, self.args))
            try:
                return msg % args
            except TypeError:
                return msg.format(*args)

        return msg

    @staticmethod
    def _proccess_msg(msg: object) -> object:
        if isinstance(msg, dict):
            return json.dumps(msg, indent=2, ensure_ascii=False, default=str)
        return msg


logging.setLogRecordFactory(JsonLogRecord)


class LogHandler(RichHandler):
    """Rich Handler with default settings and automatic console creation."""

    def __init__(
        self, level: int = 10, file: IO[str] | None = None, width: int | None = None, debug: bool = False, **kwargs
    ) -> None:
        is_file: bool = file is not None
        redacted: bool = is_file and not debug
        console_cls = RedactedConsole if redacted else Console
        if file is None and width is None:
            console = _DEFAULT_CONSOLE
        else:
            console = console_cls(file=file, width=width)
        options = constants.RICH_HANDLER_DEBUG_CONFIG if debug else constants.RICH_HANDLER_CONFIG
        options = options | kwargs
        super().__init__(level, console, show_time=is_file, **options)


def setup_logging(level: int = 20, file: Path | None = None) -> list[LogHandler]:
    """Attaches a console handler (and optionally a file handler) to the package logger."""
    logger.setLevel(min(level, 10) if env.DEBUG_VAR else level)
    handlers = [LogHandler(level=level, debug=env.DEBUG_VAR)]
    if file is not None:
        file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            LogHandler(
                level=10 if env.DEBUG_VAR else level,
                file=file.open("w", encoding="utf8"),
                width=constants.DEFAULT_CONSOLE_WIDTH,
                debug=env.DEBUG_VAR,
            )
        )
    for handler in [handler for handler in logger.handlers if isinstance(handler, LogHandler)]:
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    return handlers


def log(message: object, level: int = 10, **kwargs) -> None:
    """Simple logging function."""
    log_debug(message, level, **kwargs)
    logger.log(level, message, **kwargs)


def log_debug(message: object, level: int = 10, **kwargs) -> None:
    """Simple logging function."""
    if env.DEBUG_VAR:
        logger_debug.log(level, message, **kwargs)


def log_spacer(level: int, char: str = "-", *, log_to_console: bool = True) -> None:
    spacer = char * min(int(constants.DEFAULT_CONSOLE_WIDTH / 2), 50)
    log(spacer, level)
    if log_to_console and "pytest" not in sys.modules and logger.isEnabledFor(level):
        _DEFAULT_CONSOLE.print("")


def _redact_message(message: Exception | str) -> str:
    redacted = str(message)
    separators = ["\\", "\\\\", "/"]
    for sep in separators:
        as_tail = sep + _USER_NAME
        as_part = _USER_NAME + sep
        redacted = redacted.replace(as_tail, f"{sep}[REDACTED]").replace(as_part, f"[REDACTED]{sep}")
    return redacted


@contextlib.contextmanager
def _setup_startup_logger() -> Generator[None]:
    startup_logger.setLevel(10)
    if "pytest" not in sys.modules and not startup_logger.handlers:
        startup_logger.addHandler(LogHandler(level=10))
    yield


def catch_exceptions(func: Callable[_P, _ExitCode]) -> Callable[_P, _ExitCode]:
    """Decorator to automatically log uncaught exceptions and turn them into an exit code."""

    @wraps(func)
    def catch(*args, **kwargs) -> _ExitCode | None:
        try:
            with _setup_startup_logger():
                return func(*args, **kwargs)

        except InvalidYamlError as e:
            startup_logger.error(e.message)

        except XFSyncError as e:
            startup_logger.error(str(e))

        except OSError as e:
            startup_logger.exception(str(e))

        except KeyboardInterrupt:
            startup_logger.info("Exiting...")
            return

        except Exception:
            startup_logger.exception("An unexpected error occurred")

        return 1

    return catch

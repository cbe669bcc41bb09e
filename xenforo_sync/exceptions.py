from __future__ import annotations

from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING

from yaml import YAMLError
from yarl import URL

from xenforo_sync.constants import VALIDATION_ERROR_FOOTER

if TYPE_CHECKING:
    from collections.abc import Mapping


def _format_error(ui_failure: str, message: str) -> str:
    if ui_failure == message:
        return message
    return f"{ui_failure} - {message}"


# https://developers.cloudflare.com/support/troubleshooting/cloudflare-errors/troubleshooting-cloudflare-5xx-errors/
CLOUDFLARE_HTTP_ERROR_CODES = {
    520: "Unexpected Response",
    521: "Web Server Down",
    522: "Connection Timeout",
    523: "Origin Is Unreachable",
    524: "Response Timeout",
    525: "SSL Handshake Failed",
    526: "Untrusted",
    530: "IP Banned / Restricted",
}

HTTP_ERROR_CODES = {
    **CLOUDFLARE_HTTP_ERROR_CODES,
    **{code.value: code.phrase for code in HTTPStatus},
}


class XFSyncError(Exception):
    """Base exception for xenforo-sync errors."""

    def __init__(
        self,
        ui_failure: str = "Something went wrong",
        *,
        message: str | None = None,
        status: str | int | None = None,
        origin: URL | Path | str | None = None,
    ) -> None:
        self.ui_failure = ui_failure
        self.message = message or ui_failure
        self.origin = origin
        self.status = status
        super().__init__(self.message)

    def __str__(self) -> str:
        return _format_error(self.ui_failure, self.message)


class RequestError(XFSyncError):
    def __init__(self, message: str | None = None, *, origin: URL | str | None = None) -> None:
        """This error will be thrown when a request could not be completed after all retries."""
        ui_failure = "Request Failed"
        super().__init__(ui_failure, message=message, origin=origin)


class HTTPStatusError(XFSyncError):
    def __init__(
        self,
        status: int,
        message: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        origin: URL | str | None = None,
    ) -> None:
        """This error will be thrown when a response has an unexpected status code."""
        ui_failure = create_error_msg(status)
        self.headers: Mapping[str, str] = headers or {}
        super().__init__(ui_failure, message=message, status=status, origin=origin)

    @property
    def retry_after(self) -> str | None:
        return self.headers.get("retry-after") or self.headers.get("Retry-After")


class InvalidContentTypeError(XFSyncError):
    def __init__(self, *, message: str | None = None, origin: URL | str | None = None) -> None:
        """This error will be thrown when the content type isn't as expected."""
        ui_failure = "Invalid Content Type"
        super().__init__(ui_failure, message=message, origin=origin)


class DownloadError(XFSyncError):
    def __init__(self, status: str | int, message: str | None = None, origin: URL | Path | None = None) -> None:
        """This error will be thrown when a download fails."""
        ui_failure = create_error_msg(status)
        super().__init__(ui_failure, message=message, status=status, origin=origin)


class ScrapeError(XFSyncError):
    def __init__(self, status: str | int, message: str | None = None, origin: URL | str | None = None) -> None:
        """This error will be thrown when a scrape fails."""
        ui_failure = create_error_msg(status)
        super().__init__(ui_failure, message=message, status=status, origin=origin)


class NotFoundError(XFSyncError):
    def __init__(self, entity: str, ref: object) -> None:
        """This error will be thrown when a site, forum or thread does not exist."""
        ui_failure = f"{entity.capitalize()} Not Found"
        self.entity = entity
        self.ref = ref
        super().__init__(ui_failure, message=f"{entity} {ref!r} not found", status=404)


class LoginError(XFSyncError):
    def __init__(self, message: str | None = None, *, origin: URL | str | None = None) -> None:
        """This error will be thrown when the login fails for a site."""
        ui_failure = "Failed Login"
        super().__init__(ui_failure, message=message, origin=origin)


class CSRFTokenNotFoundError(LoginError):
    def __init__(self, *, origin: URL | str | None = None) -> None:
        """This error will be thrown when no CSRF token can be found on the login page."""
        super().__init__("CSRF token not found", origin=origin)


class InvalidYamlError(XFSyncError):
    def __init__(self, file: Path, e: Exception) -> None:
        """This error will be thrown when a yaml config file has invalid values."""
        file_path = file.resolve()
        ui_failure = "Invalid YAML"
        msg = f"Unable to read file '{file_path}'"
        if isinstance(e, YAMLError):
            msg = f"File '{file_path}' is not a valid YAML file"
        mark = getattr(e, "problem_mark", None)
        if mark:
            msg += f"\n\nThe error was found in this line: \n {mark}"

        problem = getattr(e, "problem", None) or str(e)
        msg += f"\n\n{problem.capitalize()}"
        msg += f"\n\n{VALIDATION_ERROR_FOOTER}"
        super().__init__(ui_failure, message=msg, origin=file)


def create_error_msg(error: int | str) -> str:
    if isinstance(error, str):
        return error
    if phrase := HTTP_ERROR_CODES.get(error):
        return f"{error} {phrase}"

    if 300 <= error < 400:
        return f"HTTP Redirection ({error})"
    if 400 <= error < 500:
        return f"HTTP Client Error ({error})"
    if 500 <= error < 600:
        return f"HTTP Server Error ({error})"

    return f"Unknown ({error})"

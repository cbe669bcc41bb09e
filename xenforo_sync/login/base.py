from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from yarl import URL

from xenforo_sync import constants
from xenforo_sync.clients import RequestOptions
from xenforo_sync.exceptions import CSRFTokenNotFoundError, HTTPStatusError, LoginError
from xenforo_sync.utils.logger import log

if TYPE_CHECKING:
    from collections.abc import Collection

    from xenforo_sync.clients import Cookie, HttpClient, Response


def extract_csrf_token(html: str) -> str:
    """Returns the first CSRF token found in a login page.

    Tries the modern `_xfToken` hidden input first, then alternate formattings,
    the legacy `csrf_token` field and finally the token embedded in the page's JS config"""
    for pattern in constants.CSRF_TOKEN_PATTERNS:
        if match := pattern.search(html):
            return match.group(1)
    raise CSRFTokenNotFoundError


def is_logged_in(html: str) -> bool:
    return any(marker in html for marker in (constants.LOGGED_IN_MARKER, "You are already logged in."))


@dataclasses.dataclass(slots=True)
class LoginSession:
    client: HttpClient
    site_url: URL
    adapter: str
    response: Response | None = None
    cookies: list[Cookie] = dataclasses.field(default_factory=list)
    logged_in: bool = False

    @property
    def cookie_header(self) -> str | None:
        return self.client.cookies.header_for(self.site_url)


class LoginAdapter(ABC):
    """A login flow for one family of XenForo sites"""

    key: ClassVar[str]
    description: ClassVar[str] = ""
    login_path: ClassVar[str] = "/login/"
    submit_path: ClassVar[str] = "/login/login"
    success_statuses: ClassVar[Collection[int]] = (303,)

    @abstractmethod
    async def login(self, client: HttpClient, username: str, password: str, site_url: URL | str) -> LoginSession: ...

    async def fetch_login_page(self, client: HttpClient, site_url: URL) -> tuple[str, Response]:
        response = await client.get(self.login_path, RequestOptions(base_url=site_url))
        html = await response.text()
        if not html.strip():
            raise LoginError("Empty login page", origin=response.url)
        return html, response

    def login_form(self, token: str, username: str, password: str, site_url: URL) -> dict[str, str]:
        return {
            "_xfToken": token,
            "login": username,
            "password": password,
            "remember": "1",
            "_xfRedirect": str(site_url),
        }

    def login_headers(self, site_url: URL) -> dict[str, str]:
        origin = str(site_url.origin())
        return {
            "Content-Type": "application/x-www-form-urlencoded",
            "X-Requested-With": "XMLHttpRequest",
            "Origin": origin,
            "Referer": f"{origin}{self.login_path}",
        }

    async def submit_credentials(
        self, client: HttpClient, token: str, username: str, password: str, site_url: URL
    ) -> Response:
        options = RequestOptions(
            base_url=site_url,
            headers=self.login_headers(site_url),
            data=self.login_form(token, username, password, site_url),
            allow_redirects=False,
            expected_statuses=self.success_statuses,
            retry=False,
        )
        try:
            return await client.post(self.submit_path, options)
        except HTTPStatusError as e:
            msg = f"Login rejected by {site_url.host} with status {e.status}"
            raise LoginError(msg, origin=e.origin) from e

    def _finish(self, session: LoginSession, response: Response, html: str = "") -> LoginSession:
        session.response = response
        session.cookies = list(session.client.cookies)
        session.logged_in = response.status == 303 or is_logged_in(html)
        log(f"[{self.key}] Login finished with status {response.status} ({len(session.cookies)} cookies)", 20)
        return session

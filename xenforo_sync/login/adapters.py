from __future__ import annotations

from typing import TYPE_CHECKING

from xenforo_sync.clients import RequestOptions
from xenforo_sync.exceptions import LoginError
from xenforo_sync.login.base import LoginAdapter, LoginSession, extract_csrf_token
from xenforo_sync.utils.logger import log
from xenforo_sync.utils.utilities import parse_url

if TYPE_CHECKING:
    from yarl import URL

    from xenforo_sync.clients import HttpClient


class StandardLoginAdapter(LoginAdapter):
    """GET /login/ -> CSRF token -> POST /login/login, expecting a 303 redirect"""

    key = "xamvn-clone"
    description = "Standard XenForo login form"

    async def login(self, client: HttpClient, username: str, password: str, site_url: URL | str) -> LoginSession:
        site_url = parse_url(str(site_url))
        session = LoginSession(client, site_url, self.key)
        html, _ = await self.fetch_login_page(client, site_url)
        token = extract_csrf_token(html)
        log(f"[{self.key}] Got CSRF token from {site_url.host}", 10)
        response = await self.submit_credentials(client, token, username, password, site_url)
        return self._finish(session, response)


class HomepageSeededLoginAdapter(LoginAdapter):
    """Loads the homepage first to seed session cookies and follows the post-login redirect explicitly"""

    key = "xamvn-com"
    description = "Login for sites that need the homepage cookies and accept a 200 or 303 response"
    success_statuses = (200, 303)

    async def login(self, client: HttpClient, username: str, password: str, site_url: URL | str) -> LoginSession:
        site_url = parse_url(str(site_url))
        session = LoginSession(client, site_url, self.key)
        await client.get("/", RequestOptions(base_url=site_url))
        html, _ = await self.fetch_login_page(client, site_url)
        token = extract_csrf_token(html)
        log(f"[{self.key}] Got CSRF token from {site_url.host}", 10)
        response = await self.submit_credentials(client, token, username, password, site_url)
        if response.status != 303:
            return self._finish(session, response, await response.text())

        if response.location is None:
            raise LoginError("Login redirect without a location", origin=response.url)
        redirected = await client.get(response.location, RequestOptions(base_url=site_url))
        session = self._finish(session, redirected, await redirected.text())
        session.logged_in = True
        return session


DEFAULT_ADAPTER = StandardLoginAdapter.key

LOGIN_ADAPTERS: dict[str, type[LoginAdapter]] = {
    adapter.key: adapter for adapter in (StandardLoginAdapter, HomepageSeededLoginAdapter)
}


def get_login_adapter(key: str | None = None) -> LoginAdapter:
    """Returns an instance of the adapter registered as `key`.

    Unknown keys fall back to the default adapter"""
    key = key or DEFAULT_ADAPTER
    if adapter_cls := LOGIN_ADAPTERS.get(key):
        return adapter_cls()
    log(f"Unknown login adapter '{key}', falling back to '{DEFAULT_ADAPTER}'", 30)
    return LOGIN_ADAPTERS[DEFAULT_ADAPTER]()

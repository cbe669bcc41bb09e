from __future__ import annotations

import dataclasses
import logging
import random
import ssl
from typing import TYPE_CHECKING, Any, Self

import aiohttp
import certifi
from yarl import URL

from xenforo_sync import constants
from xenforo_sync.clients.cookies import CookieStore
from xenforo_sync.clients.rate_limiter import RateLimiter
from xenforo_sync.clients.response import Response
from xenforo_sync.config import HttpSettings, make_timeout
from xenforo_sync.exceptions import HTTPStatusError, RequestError
from xenforo_sync.utils.utilities import parse_url

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping


_DEFAULT_LOGGER = logging.getLogger("xenforo_sync")


@dataclasses.dataclass(slots=True, frozen=True)
class RequestOptions:
    """Everything that can be configured for a single request"""

    base_url: URL | str | None = None
    headers: Mapping[str, str] = dataclasses.field(default_factory=dict)
    cookies: Mapping[str, str] | None = None
    data: Mapping[str, str] | str | bytes | None = None
    timeout: float | None = None
    stream: bool = False
    allow_redirects: bool = True
    # `None` means any 2xx status
    expected_statuses: Collection[int] | None = None
    retry: bool = True

    def replace(self, **changes: Any) -> RequestOptions:
        return dataclasses.replace(self, **changes)

    def accepts(self, status: int) -> bool:
        if self.expected_statuses is None:
            return 200 <= status < 300
        return status in self.expected_statuses


class HttpClient:
    """Sequential HTTP client with browser-like headers, retries and its own cookie store.

    Must be used as an async context manager (or `open()`/`close()` must be called)"""

    def __init__(
        self,
        settings: HttpSettings | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        cookies: CookieStore | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or HttpSettings()
        self.rate_limiter = rate_limiter or RateLimiter(http=self.settings)
        self.cookies = cookies or CookieStore()
        self.logger = logger or _DEFAULT_LOGGER
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session = aiohttp.ClientSession(
            cookie_jar=aiohttp.DummyCookieJar(),
            timeout=self.settings.aiohttp_timeout,
            connector=aiohttp.TCPConnector(ssl=ssl_context),
            raise_for_status=False,
        )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise RuntimeError(f"{type(self).__name__} is not open")
        return self._session

    @staticmethod
    def build_url(url: URL | str, base_url: URL | str | None = None) -> URL:
        return parse_url(str(url), base_url)

    def default_headers(self) -> dict[str, str]:
        headers = {"User-Agent": random.choice(constants.USER_AGENTS)}
        if self.settings.browser_headers:
            headers.update(constants.BROWSER_HEADERS)
        return headers

    async def get(self, url: URL | str, options: RequestOptions | None = None) -> Response:
        return await self.request("GET", url, options)

    async def post(self, url: URL | str, options: RequestOptions | None = None) -> Response:
        return await self.request("POST", url, options)

    async def request(self, method: str, url: URL | str, options: RequestOptions | None = None) -> Response:
        """Sends a request, retrying network errors and retryable statuses with exponential backoff.

        Raises `HTTPStatusError` for a status that `options` does not accept and `RequestError`
        if the request could not be completed"""
        options = options or RequestOptions()
        full_url = self.build_url(url, options.base_url)
        attempt = 0
        while True:
            try:
                response = await self._send(method, full_url, options)
            except (aiohttp.ClientError, TimeoutError) as e:
                if not self._can_retry(options, attempt):
                    raise RequestError(f"{method} {full_url} failed: {e!r}", origin=full_url) from e
                self.logger.warning(f"{method} {full_url} failed: {e!r}")
            else:
                if options.accepts(response.status):
                    return response
                retryable = response.status in self.settings.retry_statuses
                if not (retryable and self._can_retry(options, attempt)):
                    response.close()
                    raise HTTPStatusError(
                        response.status,
                        f"{method} {full_url} returned {response.status}",
                        headers=dict(response.headers),
                        origin=full_url,
                    )
                response.close()
                self.logger.warning(f"{method} {full_url} returned {response.status}")

            attempt += 1
            await self.rate_limiter.backoff(attempt)

    def _can_retry(self, options: RequestOptions, attempt: int) -> bool:
        return options.retry and attempt < self.settings.max_retries

    async def _send(self, method: str, url: URL, options: RequestOptions) -> Response:
        """Sends `method` to `url`, following redirects one hop at a time.

        Cookies set by a hop are sent on every hop after it"""
        headers = dict(options.headers)
        data = options.data
        for _ in range(constants.MAX_REDIRECTS + 1):
            response = await self._send_once(method, url, headers, data, options)
            if not (options.allow_redirects and response.is_redirect):
                break
            response.close()
            assert response.location is not None
            url = response.location
            if response.status in (301, 302, 303) and method != "HEAD":
                method, data = "GET", None
                headers = {name: value for name, value in headers.items() if name.lower() != "content-type"}
        else:
            raise RequestError(f"{url} exceeded {constants.MAX_REDIRECTS} redirects", origin=url)

        if not options.stream:
            try:
                await response.read()
            finally:
                response.close()
        return response

    async def _send_once(
        self,
        method: str,
        url: URL,
        headers: Mapping[str, str],
        data: Mapping[str, str] | str | bytes | None,
        options: RequestOptions,
    ) -> Response:
        request_headers = self.default_headers() | dict(headers)
        if cookie_header := self.cookies.header_for(url, options.cookies):
            request_headers["Cookie"] = cookie_header

        timeout = make_timeout(options.timeout) if options.timeout else self.settings.aiohttp_timeout
        async with self.rate_limiter:
            self.logger.debug(f"{method} {url}")
            resp = await self.session.request(
                method,
                url,
                headers=request_headers,
                data=data,
                allow_redirects=False,
                timeout=timeout,
            )

        try:
            self.cookies.update_from_headers(resp.headers.getall("Set-Cookie", []), resp.url)
            return Response.from_resp(resp)
        except BaseException:
            resp.release()
            raise

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from xenforo_sync import constants
from xenforo_sync.clients import RequestOptions
from xenforo_sync.exceptions import HTTPStatusError, InvalidContentTypeError, RequestError

if TYPE_CHECKING:
    from tests.fake_classes.forum import FakeForum
    from xenforo_sync.clients import HttpClient, RateLimiter


def _flaky(statuses: list[int]):
    """Handler answering with each status in order, then 200"""

    async def handler(_: web.Request) -> web.Response:
        status = statuses.pop(0) if statuses else 200
        return web.Response(status=status, text="<html>ok</html>", content_type="text/html")

    return handler


async def test_get_sends_browser_headers(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/", "<html><body>home</body></html>")
    response = await client.get("/", RequestOptions(base_url=forum.url))
    assert response.status == 200
    assert "home" in await response.text()

    request = forum.requested("/")[0]
    assert request.headers["User-Agent"] in constants.USER_AGENTS
    assert request.headers["Sec-Fetch-Mode"] == constants.BROWSER_HEADERS["Sec-Fetch-Mode"]


async def test_browser_headers_can_be_disabled(client: HttpClient, forum: FakeForum) -> None:
    client.settings.browser_headers = False
    forum.html("/", "<html></html>")
    await client.get("/", RequestOptions(base_url=forum.url))
    assert "Sec-Fetch-Mode" not in forum.requested("/")[0].headers


async def test_retries_server_errors_with_backoff(client: HttpClient, forum: FakeForum, sleeps: list[float]) -> None:
    forum.route("/flaky", _flaky([503]))
    response = await client.get("/flaky", RequestOptions(base_url=forum.url))
    assert response.status == 200
    assert len(forum.requested("/flaky")) == 2
    assert len(sleeps) == 1
    assert 1 <= sleeps[0] <= 1 + constants.MAX_BACKOFF_JITTER


async def test_backoff_doubles_each_attempt(client: HttpClient, forum: FakeForum, sleeps: list[float]) -> None:
    forum.route("/flaky", _flaky([500, 502, 504]))
    with pytest.raises(HTTPStatusError) as exc_info:
        await client.get("/flaky", RequestOptions(base_url=forum.url))

    assert exc_info.value.status == 504
    assert len(forum.requested("/flaky")) == 3
    assert [int(delay) for delay in sleeps] == [1, 2]


async def test_client_errors_are_not_retried(client: HttpClient, forum: FakeForum, sleeps: list[float]) -> None:
    with pytest.raises(HTTPStatusError) as exc_info:
        await client.get("/missing", RequestOptions(base_url=forum.url))
    assert exc_info.value.status == 404
    assert len(forum.requested("/missing")) == 1
    assert not sleeps


async def test_retry_can_be_disabled(client: HttpClient, forum: FakeForum) -> None:
    forum.route("/flaky", _flaky([503]))
    with pytest.raises(HTTPStatusError):
        await client.get("/flaky", RequestOptions(base_url=forum.url, retry=False))
    assert len(forum.requested("/flaky")) == 1


async def test_rate_limit_status_keeps_retry_after(client: HttpClient, forum: FakeForum) -> None:
    forum.status("/limited", 429, {"Retry-After": "5"})
    with pytest.raises(HTTPStatusError) as exc_info:
        await client.get("/limited", RequestOptions(base_url=forum.url))
    assert exc_info.value.status == 429
    assert exc_info.value.retry_after == "5"
    assert len(forum.requested("/limited")) == 1


async def test_expected_statuses(client: HttpClient, forum: FakeForum) -> None:
    forum.status("/redirect", 303, {"Location": "/"})
    options = RequestOptions(base_url=forum.url, allow_redirects=False, expected_statuses=(303,))
    response = await client.get("/redirect", options)
    assert response.status == 303
    assert response.is_redirect
    assert response.location is not None
    assert response.location.path == "/"


async def test_network_errors_raise_request_error(client: HttpClient, sleeps: list[float]) -> None:
    with pytest.raises(RequestError):
        await client.get("http://127.0.0.1:9/")
    assert len(sleeps) == 2


async def test_cookies_are_captured_across_redirects(client: HttpClient, forum: FakeForum) -> None:
    async def start(_: web.Request) -> web.Response:
        return web.Response(status=302, headers={"Location": "/end", "Set-Cookie": "xf_csrf=token; Path=/"})

    async def end(_: web.Request) -> web.Response:
        return web.Response(text="<html></html>", content_type="text/html", headers={"Set-Cookie": "xf_session=abc"})

    forum.route("/start", start)
    forum.route("/end", end)
    forum.html("/next", "<html></html>")

    await client.get("/start", RequestOptions(base_url=forum.url))
    assert "xf_csrf" in client.cookies
    assert "xf_session" in client.cookies

    await client.get("/next", RequestOptions(base_url=forum.url, cookies={"extra": "1"}))
    cookie_header = forum.requested("/next")[0].headers["Cookie"]
    assert set(cookie_header.split("; ")) == {"xf_csrf=token", "xf_session=abc", "extra=1"}


async def test_soup_rejects_binary_content(client: HttpClient, forum: FakeForum) -> None:
    forum.file("/image.jpg", b"\xff\xd8\xff")
    response = await client.get("/image.jpg", RequestOptions(base_url=forum.url))
    assert response.mime_type == "image/jpeg"
    with pytest.raises(InvalidContentTypeError):
        await response.soup()


async def test_streamed_response(client: HttpClient, forum: FakeForum) -> None:
    data = bytes(range(256)) * 10
    forum.file("/video.mp4", data, "video/mp4")
    async with await client.get("/video.mp4", RequestOptions(base_url=forum.url, stream=True)) as response:
        chunks = [chunk async for chunk in response.iter_chunked(100)]
    assert b"".join(chunks) == data


async def test_cookies_from_a_redirect_are_sent_on_the_next_hop(client: HttpClient, forum: FakeForum) -> None:
    forum.status("/a", 302, {"Location": "/b", "Set-Cookie": "xf_session=abc; Path=/"})
    forum.html("/b", "<html></html>")

    response = await client.get("/a", RequestOptions(base_url=forum.url))

    assert response.url.path == "/b"
    assert forum.requested("/b")[0].headers["Cookie"] == "xf_session=abc"


async def test_post_redirect_is_followed_with_get(client: HttpClient, forum: FakeForum) -> None:
    async def login(_: web.Request) -> web.Response:
        return web.Response(status=303, headers={"Location": "/"})

    forum.route("/login/login", login, method="POST")
    forum.html("/", "<html>home</html>")
    options = RequestOptions(
        base_url=forum.url,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        data={"login": "user"},
    )

    response = await client.post("/login/login", options)

    assert response.status == 200
    (home,) = forum.requested("/")
    assert "Content-Type" not in home.headers


async def test_redirect_loop_is_an_error(client: HttpClient, forum: FakeForum, sleeps: list[float]) -> None:
    forum.status("/loop", 302, {"Location": "/loop"})
    with pytest.raises(RequestError):
        await client.get("/loop", RequestOptions(base_url=forum.url))
    assert len(forum.requested("/loop")) == constants.MAX_REDIRECTS + 1
    assert not sleeps


async def test_timeout_does_not_bound_the_whole_transfer(client: HttpClient, forum: FakeForum) -> None:
    client.settings.timeout = 0.5
    chunks = [bytes([index]) * 100 for index in range(6)]
    forum.slow_file("/video.mp4", chunks, 0.2)

    response = await client.get("/video.mp4", RequestOptions(base_url=forum.url))
    assert await response.read() == b"".join(chunks)

    options = RequestOptions(base_url=forum.url, timeout=0.5, stream=True)
    async with await client.get("/video.mp4", options) as streamed:
        assert b"".join([chunk async for chunk in streamed.iter_chunked(100)]) == b"".join(chunks)


async def test_stalled_read_times_out(client: HttpClient, forum: FakeForum) -> None:
    forum.slow_file("/stalled.mp4", [b"data"], 1)
    with pytest.raises(RequestError):
        await client.get("/stalled.mp4", RequestOptions(base_url=forum.url, timeout=0.2, retry=False))


@pytest.mark.parametrize("retry_after", [None, "", "abc", "Someday"])
def test_retry_after_falls_back_to_the_default(rate_limiter: RateLimiter, retry_after: str | None) -> None:
    assert rate_limiter.retry_after_seconds(retry_after) == constants.RATE_LIMIT_DEFAULT_WAIT


def test_retry_after_seconds(rate_limiter: RateLimiter) -> None:
    assert rate_limiter.retry_after_seconds("5") == 5
    assert rate_limiter.retry_after_seconds(2.5) == 2.5
    assert rate_limiter.retry_after_seconds("-3") == 0


def test_retry_after_http_date(rate_limiter: RateLimiter) -> None:
    later = format_datetime(datetime.now(UTC) + timedelta(seconds=120), usegmt=True)
    assert 110 <= rate_limiter.retry_after_seconds(later) <= 120

    earlier = format_datetime(datetime.now(UTC) - timedelta(minutes=5), usegmt=True)
    assert rate_limiter.retry_after_seconds(earlier) == 0

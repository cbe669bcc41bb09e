from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from tests.fake_classes.forum import login_page, page
from xenforo_sync import constants
from xenforo_sync.exceptions import CSRFTokenNotFoundError, LoginError
from xenforo_sync.login import (
    HomepageSeededLoginAdapter,
    StandardLoginAdapter,
    extract_csrf_token,
    get_login_adapter,
    is_logged_in,
)

if TYPE_CHECKING:
    from tests.fake_classes.forum import FakeForum
    from xenforo_sync.clients import HttpClient
    from xenforo_sync.data_structures import Site
    from xenforo_sync.sync import XenforoCrawler

LOGGED_IN_PAGE = page(f'{constants.LOGGED_IN_MARKER}poster</span>')


def _login_response(status: int, location: str | None = "/", body: str = "") -> web.Response:
    headers = {"Set-Cookie": "xf_user=42%2Csecret; Path=/; HttpOnly"}
    if location:
        headers["Location"] = location
    return web.Response(status=status, headers=headers, text=body, content_type="text/html")


def _accept_login(forum: FakeForum, status: int = 303, **kwargs) -> None:
    async def handler(_: web.Request) -> web.Response:
        return _login_response(status, **kwargs)

    forum.route("/login/login", handler, method="POST")


@pytest.mark.parametrize(
    ("html", "token"),
    [
        ('<input type="hidden" name="_xfToken" value="modern" />', "modern"),
        ('<input name="_xfToken" value="alternate">', "alternate"),
        ('<input type="hidden" name="csrf_token" value="legacy">', "legacy"),
        ("<script>XF.config.csrf = 'from-js';</script>", "from-js"),
        ('<script>var data = {"csrf":"from-json"};</script>', "from-json"),
    ],
)
def test_extract_csrf_token(html: str, token: str) -> None:
    assert extract_csrf_token(page(html)) == token


def test_hidden_input_wins_over_js_config() -> None:
    html = page(
        """<script>XF.config.csrf = 'from-js';</script>
        <input type="hidden" name="_xfToken" value="modern" />"""
    )
    assert extract_csrf_token(html) == "modern"


def test_missing_csrf_token() -> None:
    with pytest.raises(CSRFTokenNotFoundError):
        extract_csrf_token(page("<form></form>"))


def test_is_logged_in() -> None:
    assert is_logged_in(LOGGED_IN_PAGE)
    assert is_logged_in(page("You are already logged in."))
    assert not is_logged_in(login_page())


def test_unknown_adapter_falls_back_to_default(logs: pytest.LogCaptureFixture) -> None:
    assert isinstance(get_login_adapter("xamvn-com"), HomepageSeededLoginAdapter)
    assert isinstance(get_login_adapter(None), StandardLoginAdapter)
    assert isinstance(get_login_adapter("vbulletin"), StandardLoginAdapter)
    assert "Unknown login adapter 'vbulletin'" in logs.text


async def test_standard_login(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/login/", login_page("1715000000,abcdef"))
    _accept_login(forum)

    session = await StandardLoginAdapter().login(client, "poster", "hunter2", forum.url)

    assert session.logged_in
    assert session.adapter == "xamvn-clone"
    assert session.response is not None
    assert session.response.status == 303
    assert client.cookies.get("xf_user") == "42%2Csecret"
    assert session.cookie_header == "xf_user=42%2Csecret"

    submitted = forum.requested("/login/login", "POST")[0]
    assert submitted.form == {
        "_xfToken": "1715000000,abcdef",
        "login": "poster",
        "password": "hunter2",
        "remember": "1",
        "_xfRedirect": forum.url,
    }
    assert submitted.headers["X-Requested-With"] == "XMLHttpRequest"
    assert submitted.headers["Origin"] == forum.url
    assert submitted.headers["Referer"] == f"{forum.url}/login/"
    assert not forum.requested("/")


async def test_standard_login_rejects_other_statuses(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/login/", login_page())
    _accept_login(forum, status=200, location=None, body=login_page())

    with pytest.raises(LoginError):
        await StandardLoginAdapter().login(client, "poster", "wrong", forum.url)


async def test_empty_login_page(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/login/", "   ")
    with pytest.raises(LoginError, match="Empty login page"):
        await StandardLoginAdapter().login(client, "poster", "hunter2", forum.url)
    assert not forum.requested("/login/login", "POST")


async def test_login_page_without_token(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/login/", page("<form></form>"))
    with pytest.raises(CSRFTokenNotFoundError):
        await StandardLoginAdapter().login(client, "poster", "hunter2", forum.url)


async def test_homepage_seeded_login_follows_redirect(client: HttpClient, forum: FakeForum) -> None:
    forum.html("/", page("home"), headers={"Set-Cookie": "xf_csrf=seed; Path=/"})
    forum.html("/login/", login_page())
    forum.html("/account/", LOGGED_IN_PAGE)
    _accept_login(forum, location="/account/")

    session = await HomepageSeededLoginAdapter().login(client, "poster", "hunter2", forum.url)

    assert session.logged_in
    assert session.response is not None
    assert session.response.url.path == "/account/"
    paths = [(request.method, request.path) for request in forum.requests]
    assert paths == [("GET", "/"), ("GET", "/login/"), ("POST", "/login/login"), ("GET", "/account/")]
    assert "xf_csrf=seed" in forum.requested("/login/login", "POST")[0].headers["Cookie"]
    assert "xf_user=42%2Csecret" in forum.requested("/account/")[0].headers["Cookie"]


@pytest.mark.parametrize(("body", "logged_in"), [(LOGGED_IN_PAGE, True), (page("Incorrect password"), False)])
async def test_homepage_seeded_login_accepts_200(
    client: HttpClient, forum: FakeForum, body: str, logged_in: bool
) -> None:
    forum.html("/", page("home"))
    forum.html("/login/", login_page())
    _accept_login(forum, status=200, location=None, body=body)

    session = await HomepageSeededLoginAdapter().login(client, "poster", "hunter2", forum.url)
    assert session.logged_in is logged_in


async def test_crawler_login_uses_site_url(crawler: XenforoCrawler, forum: FakeForum, site: Site) -> None:
    forum.html("/login/", login_page())
    _accept_login(forum)
    session = await crawler.login(site.id, "poster", "hunter2")
    assert session.logged_in
    assert str(session.site_url) == site.url


async def test_login_with_cookie_file(crawler: XenforoCrawler, forum: FakeForum, site: Site, tmp_path) -> None:
    cookie_file = tmp_path / "cookies.json"
    cookie_file.write_text('[{"name": "xf_user", "value": "42"}]', encoding="utf8")
    forum.html("/", LOGGED_IN_PAGE)

    session = await crawler.login_with_cookies(site.id, cookie_file)
    assert session.logged_in
    assert forum.requested("/")[0].headers["Cookie"] == "xf_user=42"

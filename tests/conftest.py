from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from aiohttp.test_utils import TestServer

from tests.fake_classes.forum import FakeForum
from xenforo_sync.clients import HttpClient, RateLimiter
from xenforo_sync.config import DownloadSettings, HttpSettings, RateLimitSettings
from xenforo_sync.data_structures import ExtractedForum, ExtractedThread, RemoteId
from xenforo_sync.database import Database
from xenforo_sync.sync import XenforoCrawler

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from xenforo_sync.data_structures import Forum, Site, Thread


@pytest.fixture
def tmp_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
async def logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(10)
    return caplog


@pytest.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Database]:
    async with Database(tmp_path / "xenforo_sync.db") as database:
        yield database


@pytest.fixture
def sleeps() -> list[float]:
    """Every pause requested from the rate limiter, in order"""
    return []


@pytest.fixture
def rate_limiter(sleeps: list[float]) -> RateLimiter:
    settings = RateLimitSettings(
        requests_per_second=1000,
        page_delay=0.075,
        download_delay_min=0,
        download_delay_max=0,
    )
    limiter = RateLimiter(settings, HttpSettings(retry_delay=1, max_retries=2))

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    limiter.sleep = sleep  # type: ignore[method-assign]
    return limiter


@pytest.fixture
async def forum() -> AsyncGenerator[FakeForum]:
    fake = FakeForum()
    async with TestServer(fake.app()) as server:
        fake.url = str(server.make_url("/")).rstrip("/")
        yield fake


@pytest.fixture
async def client(rate_limiter: RateLimiter) -> AsyncGenerator[HttpClient]:
    async with HttpClient(HttpSettings(timeout=5, max_retries=2), rate_limiter=rate_limiter) as http_client:
        yield http_client


@pytest.fixture
async def site(db: Database, forum: FakeForum) -> Site:
    return await db.sites.add(forum.url, "Fake forum")


@pytest.fixture
def crawler(db: Database, client: HttpClient, tmp_path: Path) -> XenforoCrawler:
    return XenforoCrawler(db, client, downloads=DownloadSettings(folder=tmp_path / "downloads"))


@pytest.fixture
async def news(db: Database, site: Site) -> Forum:
    forum, _ = await db.forums.upsert(site.id, ExtractedForum(RemoteId("2"), "News", f"{site.url}/forums/news.2/"))
    return forum


@pytest.fixture
async def thread(db: Database, news: Forum, site: Site) -> Thread:
    extracted = ExtractedThread(RemoteId("10"), "Photos", f"{site.url}/threads/photos.10/")
    row, _ = await db.threads.upsert(news.id, extracted)
    return row

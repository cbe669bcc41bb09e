from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from xenforo_sync.clients import RequestOptions
from xenforo_sync.data_structures import LocalId, MediaTypeFilter, Progress, RemoteId, SyncStats
from xenforo_sync.exceptions import LoginError, NotFoundError
from xenforo_sync.login import LoginSession, get_login_adapter, is_logged_in
from xenforo_sync.parsing import (
    DEFAULT_SELECTORS,
    extract_forums,
    extract_posts,
    extract_threads,
    forum_page_path,
    last_page,
    thread_listing_items,
    thread_page_path,
)
from xenforo_sync.sync.downloader import MediaDownloader
from xenforo_sync.sync.progress import NullProgress, ProgressSink, reporting
from xenforo_sync.sync.reconcile import Reconciled, Reconciler
from xenforo_sync.utils.utilities import parse_url

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from bs4 import BeautifulSoup
    from yarl import URL

    from xenforo_sync.clients import HttpClient
    from xenforo_sync.config import DownloadSettings
    from xenforo_sync.data_structures import DownloadStats, Forum, Post, Thread
    from xenforo_sync.database import Database
    from xenforo_sync.parsing import XenforoSelectors


_DEFAULT_LOGGER = logging.getLogger("xenforo_sync")


class XenforoCrawler:
    """Crawls a XenForo site and keeps the database in sync with it.

    Outbound requests always use the ids assigned by the site (`RemoteId`).
    Database lookups and foreign keys always use local ids (`LocalId`)"""

    def __init__(
        self,
        database: Database,
        client: HttpClient,
        *,
        downloads: DownloadSettings | None = None,
        selectors: XenforoSelectors = DEFAULT_SELECTORS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database = database
        self.client = client
        self.rate_limiter = client.rate_limiter
        self.selectors = selectors
        self.logger = logger or _DEFAULT_LOGGER
        self.reconciler = Reconciler(database)
        self.downloader = MediaDownloader(database, client, downloads, logger=self.logger)

    async def site_url(self, site_id: LocalId) -> URL:
        return parse_url(await self.database.sites.get_url(site_id))

    async def fetch_soup(
        self, path: str, site_url: URL, cookies: Mapping[str, str] | None = None
    ) -> BeautifulSoup:
        response = await self.client.get(path, RequestOptions(base_url=site_url, cookies=cookies))
        return await response.soup()

    # ~~~~~ Login ~~~~~~~

    async def login(
        self, site_id: LocalId, username: str, password: str, adapter: str | None = None
    ) -> LoginSession:
        site_url = await self.site_url(site_id)
        login_adapter = get_login_adapter(adapter)
        self.logger.info(f"Logging in to {site_url.host} as {username} ({login_adapter.key})")
        return await login_adapter.login(self.client, username, password, site_url)

    async def login_with_cookies(self, site_id: LocalId, cookie_file: Path) -> LoginSession:
        """Replays cookies exported from a browser instead of logging in with a password"""
        site_url = await self.site_url(site_id)
        if not await self.client.cookies.load_file(cookie_file, site_url):
            raise LoginError(f"No cookies found in {cookie_file}", origin=site_url)
        response = await self.client.get("/", RequestOptions(base_url=site_url))
        logged_in = is_logged_in(await response.text())
        if not logged_in:
            self.logger.warning(f"Cookies from {cookie_file} did not log in to {site_url.host}")
        return LoginSession(self.client, site_url, "cookies", response, list(self.client.cookies), logged_in)

    # ~~~~~ Forums and threads ~~~~~~~

    async def list_forums(self, site_id: LocalId) -> list[Forum]:
        site_url = await self.site_url(site_id)
        soup = await self.fetch_soup("/", site_url)
        result = await self.reconciler.forums(site_id, extract_forums(soup, site_url, self.selectors))
        self.logger.info(f"{site_url.host}: {len(result.records)} forums ({result.created} new)")
        return result.records

    async def get_forum(self, site_id: LocalId, forum_id: LocalId) -> Forum:
        forum = await self.database.forums.get(forum_id)
        if forum is None or forum.site_id != site_id:
            raise NotFoundError("forum", forum_id)
        if not forum.original_id:
            raise NotFoundError("forum original id", forum_id)
        return forum

    async def list_threads(self, site_id: LocalId, forum_id: LocalId, page: int = 1) -> list[Thread]:
        forum = await self.get_forum(site_id, forum_id)
        site_url = await self.site_url(site_id)
        soup = await self.fetch_soup(forum_page_path(forum.original_id, page), site_url)
        return (await self._reconcile_threads(soup, site_url, forum)).records

    async def count_thread_pages(self, site_id: LocalId, forum_original_id: RemoteId) -> int:
        site_url = await self.site_url(site_id)
        soup = await self.fetch_soup(forum_page_path(forum_original_id), site_url)
        return last_page(soup, thread_listing_items(self.selectors), self.selectors)

    async def sync_all_threads(
        self, site_id: LocalId, forum_id: LocalId, progress: ProgressSink | None = None
    ) -> SyncStats:
        sink = progress or NullProgress()
        async with reporting(sink):
            forum = await self.get_forum(site_id, forum_id)
            site_url = await self.site_url(site_id)
            stats = await self._sync_forum_threads(site_url, forum, sink)
        await sink.complete(stats)
        return stats

    async def sync_all_forums_and_threads(self, site_id: LocalId, progress: ProgressSink | None = None) -> SyncStats:
        sink = progress or NullProgress()
        stats = SyncStats()
        async with reporting(sink):
            site_url = await self.site_url(site_id)
            forums = await self.list_forums(site_id)
            for index, forum in enumerate(forums):
                if index:
                    await self.rate_limiter.page_pause()
                await sink.update(Progress(index, len(forums), f"Forum: {forum.name}"))
                await self._sync_forum_threads(site_url, forum, NullProgress(), stats)
            await sink.update(Progress(len(forums), len(forums), "Done"))
        await sink.complete(stats)
        return stats

    async def _reconcile_threads(self, soup: BeautifulSoup, site_url: URL, forum: Forum) -> Reconciled[Thread]:
        return await self.reconciler.threads(forum.id, extract_threads(soup, site_url, self.selectors))

    async def _sync_forum_threads(
        self, site_url: URL, forum: Forum, sink: ProgressSink, stats: SyncStats | None = None
    ) -> SyncStats:
        stats = stats or SyncStats()
        soup = await self.fetch_soup(forum_page_path(forum.original_id), site_url)
        pages = last_page(soup, thread_listing_items(self.selectors), self.selectors)
        self.logger.info(f"Forum '{forum.name}' ({forum.original_id}): {pages} pages")
        async for page in self.rate_limiter.pages(pages):
            if page > 1:
                soup = await self.fetch_soup(forum_page_path(forum.original_id, page), site_url)
            result = await self._reconcile_threads(soup, site_url, forum)
            stats.pages += 1
            stats.add(result.created, result.updated)
            await sink.update(Progress(page, pages, f"Forum {forum.name}: page {page}/{pages}"))
        return stats

    # ~~~~~ Posts ~~~~~~~

    async def get_thread(self, site_id: LocalId, thread_ref: LocalId | RemoteId | int | str) -> Thread:
        """Finds a thread by local id first, then by the site's own id (`thread-` prefix allowed)"""
        ref = str(thread_ref).strip()
        if ref.isdigit():
            thread = await self.database.threads.get(LocalId(int(ref)))
            if thread and await self.database.threads.get_site_id(thread.id) == site_id:
                return thread

        original_id = RemoteId(ref.removeprefix("thread-"))
        if thread := await self.database.threads.get_by_original_id(original_id, site_id):
            return thread
        raise NotFoundError("thread", thread_ref)

    async def count_post_pages(self, site_id: LocalId, thread_id: LocalId | RemoteId | int | str) -> int:
        thread = await self.get_thread(site_id, thread_id)
        site_url = await self.site_url(site_id)
        soup = await self.fetch_soup(thread_page_path(thread.original_id), site_url)
        return last_page(soup, self.selectors.posts.article, self.selectors)

    async def get_thread_posts(
        self,
        site_id: LocalId,
        thread_id: LocalId | RemoteId | int | str,
        page: int = 1,
        cookies: Mapping[str, str] | None = None,
    ) -> list[Post]:
        thread = await self.get_thread(site_id, thread_id)
        site_url = await self.site_url(site_id)
        soup = await self.fetch_soup(thread_page_path(thread.original_id, page), site_url, cookies)
        return (await self._reconcile_posts(soup, site_url, thread)).records

    async def sync_all_thread_posts(
        self,
        site_id: LocalId,
        thread_id: LocalId | RemoteId | int | str,
        cookies: Mapping[str, str] | None = None,
        progress: ProgressSink | None = None,
    ) -> SyncStats:
        sink = progress or NullProgress()
        stats = SyncStats()
        async with reporting(sink):
            thread = await self.get_thread(site_id, thread_id)
            site_url = await self.site_url(site_id)
            soup = await self.fetch_soup(thread_page_path(thread.original_id), site_url, cookies)
            pages = last_page(soup, self.selectors.posts.article, self.selectors)
            self.logger.info(f"Thread '{thread.name}' ({thread.original_id}): {pages} pages")
            async for page in self.rate_limiter.pages(pages):
                if page > 1:
                    soup = await self.fetch_soup(thread_page_path(thread.original_id, page), site_url, cookies)
                result = await self._reconcile_posts(soup, site_url, thread)
                stats.pages += 1
                stats.add(result.created, result.updated)
                await sink.update(Progress(page, pages, f"Thread {thread.name}: page {page}/{pages}"))
            await self.database.threads.set_last_sync(thread.id)
        await sink.complete(stats)
        return stats

    async def _reconcile_posts(self, soup: BeautifulSoup, site_url: URL, thread: Thread) -> Reconciled[Post]:
        return await self.reconciler.posts(thread.id, extract_posts(soup, site_url, self.selectors))

    # ~~~~~ Media ~~~~~~~

    async def download_thread_media(
        self,
        site_id: LocalId,
        thread_id: LocalId | RemoteId | int | str,
        media_type: MediaTypeFilter = MediaTypeFilter.ALL,
        cookies: Mapping[str, str] | None = None,
        progress: ProgressSink | None = None,
    ) -> DownloadStats:
        sink = progress or NullProgress()
        async with reporting(sink):
            thread = await self.get_thread(site_id, thread_id)
            site_url = await self.site_url(site_id)
        return await self.downloader.download_thread_media(site_url, thread, media_type, cookies, sink)

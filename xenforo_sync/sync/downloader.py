from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
import aiohttp

from xenforo_sync import constants
from xenforo_sync.clients import RequestOptions
from xenforo_sync.config import DownloadSettings
from xenforo_sync.data_structures import DownloadStats, MediaTypeFilter, Progress
from xenforo_sync.exceptions import DownloadError, HTTPStatusError, InvalidContentTypeError, XFSyncError
from xenforo_sync.sync.progress import NullProgress, ProgressSink, reporting
from xenforo_sync.utils.utilities import (
    delete_file,
    file_exists,
    get_size_or_none,
    parse_url,
    sanitize_filename,
    url_filename,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from yarl import URL

    from xenforo_sync.clients import HttpClient, Response
    from xenforo_sync.data_structures import LocalId, Media, Thread
    from xenforo_sync.database import Database


_DEFAULT_LOGGER = logging.getLogger("xenforo_sync")


def group_by_url(media: list[Media]) -> dict[str, list[Media]]:
    """Groups downloadable media by URL, keeping the order of the first occurrence"""
    groups: dict[str, list[Media]] = {}
    for item in media:
        if item.media_type_id.downloadable:
            groups.setdefault(item.url, []).append(item)
    return groups


def resolve_filename(media: Media) -> str:
    """Stored filename, else the last segment of the URL path, else a generated name"""
    name = media.filename or url_filename(parse_url(media.url))
    name = sanitize_filename(name) if name else ""
    return name or f"media_{media.id}_{int(time.time())}"


def is_media_content_type(content_type: str) -> bool:
    return content_type.startswith(constants.MEDIA_CONTENT_TYPES)


class MediaDownloader:
    """Downloads the media of a thread, one unique URL at a time.

    Files go to `<folder>/thread-<original_id>/<filename>`.
    Every failure of a single URL is counted and the loop continues with the next one"""

    def __init__(
        self,
        database: Database,
        client: HttpClient,
        settings: DownloadSettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database = database
        self.client = client
        self.rate_limiter = client.rate_limiter
        self.settings = settings or DownloadSettings()
        self.logger = logger or _DEFAULT_LOGGER

    def thread_folder(self, thread: Thread) -> Path:
        return self.settings.folder / f"thread-{thread.original_id}"

    async def download_thread_media(
        self,
        site_url: URL,
        thread: Thread,
        media_type: MediaTypeFilter = MediaTypeFilter.ALL,
        cookies: Mapping[str, str] | None = None,
        progress: ProgressSink | None = None,
    ) -> DownloadStats:
        sink = progress or NullProgress()
        async with reporting(sink):
            stats = await self._download_all(site_url, thread, media_type, cookies, sink)
        await sink.complete(stats)
        return stats

    async def _download_all(
        self,
        site_url: URL,
        thread: Thread,
        media_type: MediaTypeFilter,
        cookies: Mapping[str, str] | None,
        sink: ProgressSink,
    ) -> DownloadStats:
        media = await self.database.media.all_in_thread(thread.id, media_type.media_types())
        groups = group_by_url(media)
        stats = DownloadStats(total=len(groups))
        folder = self.thread_folder(thread)
        claimed = {Path(item.local_path): item.url for item in media if item.local_path}
        self.logger.info(f"Thread {thread.original_id}: {stats.total} unique media to download into {folder}")

        for url, rows in groups.items():
            ids = [row.id for row in rows]
            if await self._already_downloaded(rows):
                stats.skipped += 1
            else:
                path = self._target_path(folder, rows[0], claimed)
                if await self._download_one(url, path, rows, ids, site_url, cookies):
                    claimed[path] = url
                    stats.downloaded += 1
                    await self.rate_limiter.download_pause()
                else:
                    stats.failed += 1
            await sink.update(Progress(stats.processed, stats.total, url))

        self.logger.info(f"Thread {thread.original_id}: {stats.as_dict()}")
        return stats

    async def _already_downloaded(self, rows: list[Media]) -> bool:
        """Checks the files of rows marked as downloaded, resetting the rows whose file is gone"""
        for row in rows:
            if row.is_downloaded and row.local_path and await file_exists(Path(row.local_path)):
                others = [other.id for other in rows if other.local_path != row.local_path]
                if others:
                    await self.database.media.mark_downloaded(others, row.local_path, row.mime_type)
                return True

        missing = [row.id for row in rows if row.is_downloaded]
        if missing:
            self.logger.info(f"Media file missing on disk, downloading again: {rows[0].url}")
            await self.database.media.mark_not_downloaded(missing)
        return False

    def _target_path(self, folder: Path, media: Media, claimed: Mapping[Path, str]) -> Path:
        path = folder / resolve_filename(media)
        owner = claimed.get(path)
        if owner is not None and owner != media.url:
            path = path.with_stem(f"{path.stem}_{media.id}")
        return path

    async def _download_one(
        self,
        url: str,
        path: Path,
        rows: list[Media],
        ids: list[LocalId],
        site_url: URL,
        cookies: Mapping[str, str] | None,
    ) -> bool:
        try:
            mime_type = await self._fetch_to_file(url, path, site_url, cookies)
        except HTTPStatusError as e:
            self.logger.error(f"Download failed: {url} ({e!r})")
            await self.database.media.mark_not_downloaded(ids)
            if e.status == 429:
                await self.rate_limiter.rate_limited(e.retry_after)
            return False
        except InvalidContentTypeError as e:
            self.logger.warning(f"Not a media file: {url} ({e.message})")
            await self.database.media.mark_not_downloaded(ids)
            return False
        except (XFSyncError, aiohttp.ClientError, TimeoutError, OSError) as e:
            self.logger.error(f"Download failed: {url} ({e!r})")
            await self.database.media.mark_not_downloaded(ids)
            return False

        await self.database.media.mark_downloaded(ids, str(path), mime_type)
        self.logger.debug(f"Downloaded {url} -> {path}")
        if self.settings.download_thumbnails:
            await self._download_thumbnail(rows[0], path, site_url, cookies)
        return True

    async def _fetch_to_file(
        self, url: str, path: Path, site_url: URL, cookies: Mapping[str, str] | None
    ) -> str | None:
        """Streams `url` into `path` and returns its mime type"""
        options = RequestOptions(
            headers={"Referer": str(site_url)},
            cookies=cookies,
            stream=True,
            expected_statuses=(200,),
        )
        async with await self.client.get(url, options) as response:
            if not is_media_content_type(response.content_type):
                msg = f"Received '{response.content_type or 'no content type'}'"
                raise InvalidContentTypeError(message=msg, origin=response.url)
            await self._write(response, path)

        if not await get_size_or_none(path):
            await delete_file(path)
            raise DownloadError(500, "File is empty", origin=path)
        return response.mime_type or None

    async def _write(self, response: Response, path: Path) -> None:
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        try:
            async with aiofiles.open(path, mode="wb") as f:
                async for chunk in response.iter_chunked(self.settings.chunk_size):
                    await f.write(chunk)
        except BaseException:
            await delete_file(path)
            raise

    async def _download_thumbnail(
        self, media: Media, path: Path, site_url: URL, cookies: Mapping[str, str] | None
    ) -> None:
        if not media.thumbnail_url or media.thumbnail_url == media.url:
            return
        thumbnail = path.parent / constants.THUMBNAILS_FOLDER / constants.SOURCE_THUMBNAIL_SIZE / path.name
        try:
            await self._fetch_to_file(media.thumbnail_url, thumbnail, site_url, cookies)
        except (XFSyncError, aiohttp.ClientError, TimeoutError, OSError) as e:
            self.logger.warning(f"Unable to download thumbnail {media.thumbnail_url}: {e!r}")

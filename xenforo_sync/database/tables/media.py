from __future__ import annotations

from typing import TYPE_CHECKING

from xenforo_sync.data_structures import ExtractedMedia, LocalId, Media, MediaType
from xenforo_sync.database.definitions import create_media
from xenforo_sync.utils.utilities import utc_now

from ._base import Table

if TYPE_CHECKING:
    from collections.abc import Iterable


class MediaTable(Table):
    definition = create_media

    async def get(self, media_id: LocalId) -> Media | None:
        row = await self._fetchone("SELECT * FROM media WHERE id = ?", (media_id,))
        return Media.from_row(row) if row else None

    async def get_by_url(self, post_id: LocalId, url: str) -> Media | None:
        row = await self._fetchone("SELECT * FROM media WHERE post_id = ? AND url = ?", (post_id, url))
        return Media.from_row(row) if row else None

    async def all_in_post(self, post_id: LocalId) -> list[Media]:
        rows = await self._fetchall("SELECT * FROM media WHERE post_id = ? ORDER BY id", (post_id,))
        return [Media.from_row(row) for row in rows]

    async def all_in_thread(self, thread_id: LocalId, media_types: Iterable[MediaType] = tuple(MediaType)) -> list[Media]:
        types = tuple(int(media_type) for media_type in media_types)
        if not types:
            return []
        placeholders = ", ".join("?" * len(types))
        query = f"""SELECT media.* FROM media JOIN posts ON posts.id = media.post_id
        WHERE posts.thread_id = ? AND media.media_type_id IN ({placeholders}) ORDER BY media.id"""
        rows = await self._fetchall(query, (thread_id, *types))
        return [Media.from_row(row) for row in rows]

    async def upsert(self, post_id: LocalId, media: ExtractedMedia) -> tuple[Media, bool]:
        """Inserts a media by `(post_id, url)` or updates its caption and thumbnail.

        The download status of an existing row is never touched here"""
        existing = await self.get_by_url(post_id, media.url)
        now = utc_now()
        query = """INSERT INTO media (post_id, media_type_id, original_id, url, thumbnail_url, filename, caption,
            mime_type, is_downloaded, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
        ON CONFLICT (post_id, url) DO UPDATE SET
            caption = excluded.caption, thumbnail_url = excluded.thumbnail_url, updated_at = excluded.updated_at"""
        params = (
            post_id,
            int(media.media_type),
            media.original_id,
            media.url,
            media.thumbnail_url,
            media.filename,
            media.caption,
            media.mime_type,
            now,
            now,
        )
        await self.db_conn.execute(query, params)
        await self.db_conn.commit()
        row = await self.get_by_url(post_id, media.url)
        assert row is not None
        return row, existing is None

    async def mark_downloaded(self, media_ids: Iterable[LocalId], local_path: str, mime_type: str | None) -> None:
        now = utc_now()
        query = "UPDATE media SET is_downloaded = 1, local_path = ?, mime_type = ?, updated_at = ? WHERE id = ?"
        await self.db_conn.executemany(query, [(local_path, mime_type, now, media_id) for media_id in media_ids])
        await self.db_conn.commit()

    async def mark_not_downloaded(self, media_ids: Iterable[LocalId]) -> None:
        now = utc_now()
        query = "UPDATE media SET is_downloaded = 0, local_path = NULL, updated_at = ? WHERE id = ?"
        await self.db_conn.executemany(query, [(now, media_id) for media_id in media_ids])
        await self.db_conn.commit()

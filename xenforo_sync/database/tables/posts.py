from __future__ import annotations

from xenforo_sync.data_structures import ExtractedPost, LocalId, Post, RemoteId
from xenforo_sync.database.definitions import create_posts
from xenforo_sync.utils.utilities import utc_now

from ._base import Table


class PostsTable(Table):
    definition = create_posts

    async def get(self, post_id: LocalId) -> Post | None:
        row = await self._fetchone("SELECT * FROM posts WHERE id = ?", (post_id,))
        return Post.from_row(row) if row else None

    async def get_by_original_id(self, thread_id: LocalId, original_id: RemoteId) -> Post | None:
        query = "SELECT * FROM posts WHERE thread_id = ? AND original_id = ?"
        row = await self._fetchone(query, (thread_id, original_id))
        return Post.from_row(row) if row else None

    async def all_in_thread(self, thread_id: LocalId) -> list[Post]:
        rows = await self._fetchall("SELECT * FROM posts WHERE thread_id = ? ORDER BY id", (thread_id,))
        return [Post.from_row(row) for row in rows]

    async def insert(self, thread_id: LocalId, post: ExtractedPost) -> Post:
        now = utc_now()
        query = """INSERT INTO posts (thread_id, original_id, username, user_id, content, posted_at, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (thread_id, original_id) DO UPDATE SET
            username = excluded.username, user_id = excluded.user_id,
            content = excluded.content, posted_at = excluded.posted_at, updated_at = excluded.updated_at"""
        params = (thread_id, post.original_id, post.username, post.user_id, post.content, post.posted_at, now, now)
        await self.db_conn.execute(query, params)
        await self.db_conn.commit()
        row = await self.get_by_original_id(thread_id, post.original_id)
        assert row is not None
        return row

    async def update(self, post_id: LocalId, post: ExtractedPost) -> Post:
        query = """UPDATE posts SET username = ?, user_id = ?, content = ?, posted_at = COALESCE(?, posted_at), updated_at = ?
        WHERE id = ?"""
        params = (post.username, post.user_id, post.content, post.posted_at, utc_now(), post_id)
        await self.db_conn.execute(query, params)
        await self.db_conn.commit()
        row = await self.get(post_id)
        assert row is not None
        return row

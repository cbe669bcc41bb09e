from __future__ import annotations

from xenforo_sync.data_structures import ExtractedThread, LocalId, RemoteId, Thread
from xenforo_sync.database.definitions import create_threads
from xenforo_sync.utils.utilities import utc_now

from ._base import Table


class ThreadsTable(Table):
    definition = create_threads

    async def get(self, thread_id: LocalId) -> Thread | None:
        row = await self._fetchone("SELECT * FROM threads WHERE id = ?", (thread_id,))
        return Thread.from_row(row) if row else None

    async def get_in_forum(self, forum_id: LocalId, original_id: RemoteId) -> Thread | None:
        query = "SELECT * FROM threads WHERE forum_id = ? AND original_id = ?"
        row = await self._fetchone(query, (forum_id, original_id))
        return Thread.from_row(row) if row else None

    async def get_by_original_id(self, original_id: RemoteId, site_id: LocalId | None = None) -> Thread | None:
        if site_id is None:
            row = await self._fetchone("SELECT * FROM threads WHERE original_id = ? ORDER BY id", (original_id,))
        else:
            query = """SELECT threads.* FROM threads JOIN forums ON forums.id = threads.forum_id
            WHERE threads.original_id = ? AND forums.site_id = ? ORDER BY threads.id"""
            row = await self._fetchone(query, (original_id, site_id))
        return Thread.from_row(row) if row else None

    async def get_site_id(self, thread_id: LocalId) -> LocalId | None:
        query = "SELECT forums.site_id FROM threads JOIN forums ON forums.id = threads.forum_id WHERE threads.id = ?"
        row = await self._fetchone(query, (thread_id,))
        return LocalId(row[0]) if row else None

    async def all_in_forum(self, forum_id: LocalId) -> list[Thread]:
        rows = await self._fetchall("SELECT * FROM threads WHERE forum_id = ? ORDER BY id", (forum_id,))
        return [Thread.from_row(row) for row in rows]

    async def upsert(self, forum_id: LocalId, thread: ExtractedThread) -> tuple[Thread, bool]:
        """Inserts or updates a thread by `(forum_id, original_id)`. Returns the row and whether it was created"""
        existing = await self.get_in_forum(forum_id, thread.original_id)
        now = utc_now()
        query = """INSERT INTO threads (forum_id, original_id, name, original_url, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT (forum_id, original_id) DO UPDATE SET
            name = excluded.name, original_url = excluded.original_url, updated_at = excluded.updated_at"""
        await self.db_conn.execute(query, (forum_id, thread.original_id, thread.name, thread.url, now, now))
        await self.db_conn.commit()
        row = await self.get_in_forum(forum_id, thread.original_id)
        assert row is not None
        return row, existing is None

    async def set_last_sync(self, thread_id: LocalId) -> None:
        now = utc_now()
        query = "UPDATE threads SET last_sync_at = ?, updated_at = ? WHERE id = ?"
        await self.db_conn.execute(query, (now, now, thread_id))
        await self.db_conn.commit()

from __future__ import annotations

from xenforo_sync.data_structures import ExtractedForum, Forum, LocalId, RemoteId
from xenforo_sync.database.definitions import create_forums
from xenforo_sync.utils.utilities import utc_now

from ._base import Table


class ForumsTable(Table):
    definition = create_forums

    async def get(self, forum_id: LocalId) -> Forum | None:
        row = await self._fetchone("SELECT * FROM forums WHERE id = ?", (forum_id,))
        return Forum.from_row(row) if row else None

    async def get_by_original_id(self, site_id: LocalId, original_id: RemoteId) -> Forum | None:
        query = "SELECT * FROM forums WHERE site_id = ? AND original_id = ?"
        row = await self._fetchone(query, (site_id, original_id))
        return Forum.from_row(row) if row else None

    async def all_in_site(self, site_id: LocalId) -> list[Forum]:
        rows = await self._fetchall("SELECT * FROM forums WHERE site_id = ? ORDER BY id", (site_id,))
        return [Forum.from_row(row) for row in rows]

    async def upsert(self, site_id: LocalId, forum: ExtractedForum) -> tuple[Forum, bool]:
        """Inserts or updates a forum by `(site_id, original_id)`. Returns the row and whether it was created"""
        existing = await self.get_by_original_id(site_id, forum.original_id)
        now = utc_now()
        query = """INSERT INTO forums (site_id, original_id, name, original_url, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT (site_id, original_id) DO UPDATE SET
            name = excluded.name, original_url = excluded.original_url, updated_at = excluded.updated_at"""
        await self.db_conn.execute(query, (site_id, forum.original_id, forum.name, forum.url, now, now))
        await self.db_conn.commit()
        row = await self.get_by_original_id(site_id, forum.original_id)
        assert row is not None
        return row, existing is None

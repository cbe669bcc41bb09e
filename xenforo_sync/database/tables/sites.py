from __future__ import annotations

from xenforo_sync.data_structures import LocalId, Site
from xenforo_sync.database.definitions import create_sites
from xenforo_sync.exceptions import NotFoundError
from xenforo_sync.utils.utilities import utc_now

from ._base import Table


class SitesTable(Table):
    """Site registry. Sites are created by the user, the sync only reads them"""

    definition = create_sites

    async def add(self, url: str, name: str | None = None) -> Site:
        now = utc_now()
        query = """INSERT INTO sites (url, name, created_at, updated_at) VALUES (?, ?, ?, ?)
        ON CONFLICT (url) DO UPDATE SET name = COALESCE(excluded.name, sites.name), updated_at = excluded.updated_at"""
        await self.db_conn.execute(query, (url, name, now, now))
        await self.db_conn.commit()
        site = await self.get_by_url(url)
        assert site is not None
        return site

    async def get(self, site_id: LocalId) -> Site | None:
        row = await self._fetchone("SELECT * FROM sites WHERE id = ?", (site_id,))
        return Site.from_row(row) if row else None

    async def get_by_url(self, url: str) -> Site | None:
        row = await self._fetchone("SELECT * FROM sites WHERE url = ?", (url,))
        return Site.from_row(row) if row else None

    async def get_url(self, site_id: LocalId) -> str:
        if site := await self.get(site_id):
            return site.url
        raise NotFoundError("site", site_id)

    async def all(self) -> list[Site]:
        return [Site.from_row(row) for row in await self._fetchall("SELECT * FROM sites ORDER BY id")]

from __future__ import annotations

from pathlib import Path
from typing import Self

import aiosqlite

from .tables import ForumsTable, JobsTable, MediaTable, PostsTable, SchemaVersionTable, SitesTable, ThreadsTable


class Database:
    """SQLite storage for sites, forums, threads, posts, media and sync jobs.

    Every upsert is keyed by the natural key of the record, so concurrent syncs can share one file"""

    def __init__(self, db_path: Path | str) -> None:
        self._db_conn: aiosqlite.Connection
        self._db_path = db_path
        self.sites: SitesTable
        self.forums: ForumsTable
        self.threads: ThreadsTable
        self.posts: PostsTable
        self.media: MediaTable
        self.jobs: JobsTable

    async def __aenter__(self) -> Self:
        await self.startup()
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    async def startup(self) -> None:
        """Opens the connection and creates the tables if needed."""
        if str(self._db_path) != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_conn = await aiosqlite.connect(self._db_path)
        self._db_conn.row_factory = aiosqlite.Row
        await self._db_conn.execute("PRAGMA foreign_keys = ON;")
        self.sites = SitesTable(self)
        self.forums = ForumsTable(self)
        self.threads = ThreadsTable(self)
        self.posts = PostsTable(self)
        self.media = MediaTable(self)
        self.jobs = JobsTable(self)
        self._schema_versions = SchemaVersionTable(self)

        for table in (self.sites, self.forums, self.threads, self.posts, self.media, self.jobs):
            await table.startup()
        await self._schema_versions.startup()

    async def close(self) -> None:
        await self._db_conn.close()


__all__ = ["Database"]

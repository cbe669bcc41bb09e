from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    import aiosqlite

    from xenforo_sync.database import Database


class Table:
    definition: ClassVar[str]

    def __init__(self, database: Database) -> None:
        self._database = database

    @property
    def db_conn(self) -> aiosqlite.Connection:
        return self._database._db_conn

    async def startup(self) -> None:
        await self.db_conn.executescript(self.definition)
        await self.db_conn.commit()

    async def _fetchone(self, query: str, parameters: tuple = ()) -> aiosqlite.Row | None:
        cursor = await self.db_conn.execute(query, parameters)
        return await cursor.fetchone()

    async def _fetchall(self, query: str, parameters: tuple = ()) -> list[aiosqlite.Row]:
        cursor = await self.db_conn.execute(query, parameters)
        return list(await cursor.fetchall())

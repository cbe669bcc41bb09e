from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from xenforo_sync.data_structures import JobStatus, JobType, LocalId, SyncJob
from xenforo_sync.database.definitions import create_sync_jobs
from xenforo_sync.exceptions import NotFoundError
from xenforo_sync.utils.utilities import utc_now

from ._base import Table

if TYPE_CHECKING:
    from collections.abc import Mapping

_UPDATABLE_COLUMNS = frozenset(
    {
        "status",
        "progress",
        "total_items",
        "processed_items",
        "current_step",
        "error_message",
        "metadata",
        "completed_at",
        "entity_name",
    }
)


class JobsTable(Table):
    definition = create_sync_jobs

    async def create(
        self,
        job_type: JobType,
        *,
        site_id: LocalId | None = None,
        forum_id: LocalId | None = None,
        thread_id: LocalId | None = None,
        entity_name: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SyncJob:
        now = utc_now()
        query = """INSERT INTO sync_jobs (job_type, status, site_id, forum_id, thread_id, entity_name, metadata,
            created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"""
        params = (
            str(job_type),
            str(JobStatus.PENDING),
            site_id,
            forum_id,
            thread_id,
            entity_name,
            json.dumps(dict(metadata or {}), default=str),
            now,
            now,
        )
        cursor = await self.db_conn.execute(query, params)
        await self.db_conn.commit()
        job_id = cursor.lastrowid
        assert job_id is not None
        return await self.get_or_raise(LocalId(job_id))

    async def get(self, job_id: LocalId) -> SyncJob | None:
        row = await self._fetchone("SELECT * FROM sync_jobs WHERE id = ?", (job_id,))
        return SyncJob.from_row(row) if row else None

    async def get_or_raise(self, job_id: LocalId) -> SyncJob:
        if job := await self.get(job_id):
            return job
        raise NotFoundError("job", job_id)

    async def recent(self, limit: int = 20, status: JobStatus | None = None) -> list[SyncJob]:
        if status is None:
            rows = await self._fetchall("SELECT * FROM sync_jobs ORDER BY id DESC LIMIT ?", (limit,))
        else:
            query = "SELECT * FROM sync_jobs WHERE status = ? ORDER BY id DESC LIMIT ?"
            rows = await self._fetchall(query, (str(status), limit))
        return [SyncJob.from_row(row) for row in rows]

    async def update(self, job_id: LocalId, **values: Any) -> SyncJob:
        if unknown := set(values) - _UPDATABLE_COLUMNS:
            raise ValueError(f"Can not update job columns: {sorted(unknown)}")
        if "metadata" in values:
            values["metadata"] = json.dumps(values["metadata"], default=str)
        if "status" in values:
            values["status"] = str(values["status"])
        values["updated_at"] = utc_now()
        assignments = ", ".join(f"{column} = ?" for column in values)
        query = f"UPDATE sync_jobs SET {assignments} WHERE id = ?"
        await self.db_conn.execute(query, (*values.values(), job_id))
        await self.db_conn.commit()
        return await self.get_or_raise(job_id)

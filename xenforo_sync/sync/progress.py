from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from rich.progress import BarColumn, MofNCompleteColumn, Progress as RichProgressBar, TextColumn, TimeElapsedColumn

from xenforo_sync.data_structures import JobStatus, JobType, LocalId, Progress, SyncJob
from xenforo_sync.utils.logger import log
from xenforo_sync.utils.utilities import utc_now

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Mapping

    from rich.console import Console
    from rich.progress import TaskID

    from xenforo_sync.data_structures import DownloadStats, SyncStats
    from xenforo_sync.database.tables import JobsTable

    Stats = SyncStats | DownloadStats


@runtime_checkable
class ProgressSink(Protocol):
    """Receives progress of a sync or download, plus a final completion or failure signal"""

    async def update(self, progress: Progress) -> None: ...

    async def complete(self, stats: Stats) -> None: ...

    async def fail(self, error: BaseException) -> None: ...


class NullProgress:
    async def update(self, progress: Progress) -> None:
        return None

    async def complete(self, stats: Stats) -> None:
        return None

    async def fail(self, error: BaseException) -> None:
        return None


@contextlib.asynccontextmanager
async def reporting(sink: ProgressSink) -> AsyncGenerator[ProgressSink]:
    """Reports any exception raised inside the block as a failure, then re-raises it"""
    try:
        yield sink
    except Exception as e:
        await sink.fail(e)
        raise


class JobReporter:
    """Persists the progress of an operation as a sync job row"""

    def __init__(self, jobs: JobsTable, job: SyncJob) -> None:
        self.jobs = jobs
        self.job = job

    @classmethod
    async def create(
        cls,
        jobs: JobsTable,
        job_type: JobType,
        *,
        site_id: LocalId | None = None,
        forum_id: LocalId | None = None,
        thread_id: LocalId | None = None,
        entity_name: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> JobReporter:
        job = await jobs.create(
            job_type,
            site_id=site_id,
            forum_id=forum_id,
            thread_id=thread_id,
            entity_name=entity_name,
            metadata=metadata,
        )
        log(f"Created {job_type} job #{job.id}", 10)
        return cls(jobs, job)

    @property
    def job_id(self) -> LocalId:
        return self.job.id

    async def start(self) -> None:
        self.job = await self.jobs.update(self.job_id, status=JobStatus.RUNNING, progress=0)

    async def update(self, progress: Progress) -> None:
        if self.job.status is JobStatus.PENDING:
            await self.start()
        self.job = await self.jobs.update(
            self.job_id,
            progress=progress.percent,
            total_items=progress.total,
            processed_items=progress.processed,
            current_step=progress.current_step,
        )

    async def complete(self, stats: Stats) -> None:
        metadata = self.job.metadata | stats.as_dict()
        self.job = await self.jobs.update(
            self.job_id,
            status=JobStatus.COMPLETED,
            progress=100,
            metadata=metadata,
            completed_at=utc_now(),
        )
        log(f"Job #{self.job_id} completed: {stats.as_dict()}", 20)

    async def fail(self, error: BaseException) -> None:
        self.job = await self.jobs.update(
            self.job_id,
            status=JobStatus.FAILED,
            error_message=str(error),
            completed_at=utc_now(),
        )
        log(f"Job #{self.job_id} failed: {error}", 40)

    async def cancel(self) -> None:
        """Marks the job as cancelled. A running sync is not interrupted, callers must stop between iterations"""
        if self.job.status.finished:
            return
        self.job = await self.jobs.update(self.job_id, status=JobStatus.CANCELLED, completed_at=utc_now())


class RichProgress:
    """Shows progress as a rich progress bar"""

    def __init__(self, description: str, console: Console | None = None) -> None:
        self.description = description
        self._bar = RichProgressBar(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[step]}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> RichProgress:
        self._bar.start()
        self._task = self._bar.add_task(self.description, total=None, step="")
        return self

    def __exit__(self, *_) -> None:
        self._bar.stop()

    async def update(self, progress: Progress) -> None:
        if self._task is not None:
            self._bar.update(
                self._task, completed=progress.processed, total=progress.total or None, step=progress.current_step
            )

    async def complete(self, stats: Stats) -> None:
        if self._task is not None:
            self._bar.update(self._task, step="done")

    async def fail(self, error: BaseException) -> None:
        if self._task is not None:
            self._bar.update(self._task, step=f"[red]{error}")


class MultiProgress:
    """Forwards every signal to several sinks"""

    def __init__(self, *sinks: ProgressSink) -> None:
        self.sinks = sinks

    async def update(self, progress: Progress) -> None:
        for sink in self.sinks:
            await sink.update(progress)

    async def complete(self, stats: Stats) -> None:
        for sink in self.sinks:
            await sink.complete(stats)

    async def fail(self, error: BaseException) -> None:
        for sink in self.sinks:
            await sink.fail(error)

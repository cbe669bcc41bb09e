from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from tests.fake_classes.progress import RecordingProgress
from xenforo_sync.data_structures import DownloadStats, JobStatus, JobType, Progress, SyncStats
from xenforo_sync.sync import JobReporter, MultiProgress, NullProgress, ProgressSink, RichProgress, reporting

if TYPE_CHECKING:
    from xenforo_sync.database import Database


@pytest.fixture
async def reporter(db: Database) -> JobReporter:
    return await JobReporter.create(db.jobs, JobType.SYNC_FORUM_THREADS, entity_name="News", metadata={"a": 1})


@pytest.mark.parametrize(
    ("processed", "total", "percent"),
    [(0, 0, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (5, 3, 100)],
)
def test_progress_percent(processed: int, total: int, percent: int) -> None:
    assert Progress(processed, total).percent == percent


def test_sinks_follow_the_protocol() -> None:
    for sink in (NullProgress(), RecordingProgress(), MultiProgress(), RichProgress("x")):
        assert isinstance(sink, ProgressSink)


async def test_job_reporter_lifecycle(reporter: JobReporter, db: Database) -> None:
    assert reporter.job.status is JobStatus.PENDING

    await reporter.update(Progress(1, 4, "page 1/4"))
    job = await db.jobs.get_or_raise(reporter.job_id)
    assert job.status is JobStatus.RUNNING
    assert (job.progress, job.processed_items, job.total_items, job.current_step) == (25, 1, 4, "page 1/4")

    stats = SyncStats(pages=4, total=10, created=7, updated=3)
    await reporter.complete(stats)
    job = await db.jobs.get_or_raise(reporter.job_id)
    assert job.status is JobStatus.COMPLETED
    assert job.progress == 100
    assert job.completed_at is not None
    assert job.metadata == {"a": 1, "pages": 4, "total": 10, "created": 7, "updated": 3}


async def test_job_reporter_failure(reporter: JobReporter, db: Database) -> None:
    await reporter.fail(RuntimeError("connection reset"))
    job = await db.jobs.get_or_raise(reporter.job_id)
    assert job.status is JobStatus.FAILED
    assert job.error_message == "connection reset"
    assert job.completed_at is not None


async def test_cancel(reporter: JobReporter, db: Database) -> None:
    await reporter.cancel()
    assert (await db.jobs.get_or_raise(reporter.job_id)).status is JobStatus.CANCELLED

    await reporter.complete(DownloadStats())
    await reporter.cancel()
    assert (await db.jobs.get_or_raise(reporter.job_id)).status is JobStatus.COMPLETED


async def test_reporting_reports_and_reraises() -> None:
    sink = RecordingProgress()
    with pytest.raises(ValueError, match="bad page"):
        async with reporting(sink):
            raise ValueError("bad page")
    assert [str(error) for error in sink.errors] == ["bad page"]

    async with reporting(sink):
        pass
    assert len(sink.errors) == 1


async def test_multi_progress_forwards_to_every_sink() -> None:
    sinks = RecordingProgress(), RecordingProgress()
    multi = MultiProgress(*sinks)
    stats = DownloadStats(total=1, downloaded=1)

    await multi.update(Progress(1, 1))
    await multi.complete(stats)
    await multi.fail(RuntimeError())

    for sink in sinks:
        assert sink.updates == [Progress(1, 1)]
        assert sink.completed == [stats]
        assert len(sink.errors) == 1


async def test_rich_progress() -> None:
    console = Console(file=io.StringIO(), force_terminal=False)
    with RichProgress("Forum News", console=console) as bar:
        await bar.update(Progress(1, 2, "page 1/2"))
        await bar.complete(SyncStats())
        await bar.fail(RuntimeError("boom"))

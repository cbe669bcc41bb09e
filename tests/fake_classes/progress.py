from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from xenforo_sync.data_structures import DownloadStats, Progress, SyncStats


class RecordingProgress:
    def __init__(self) -> None:
        self.updates: list[Progress] = []
        self.completed: list[SyncStats | DownloadStats] = []
        self.errors: list[BaseException] = []

    async def update(self, progress: Progress) -> None:
        self.updates.append(progress)

    async def complete(self, stats: SyncStats | DownloadStats) -> None:
        self.completed.append(stats)

    async def fail(self, error: BaseException) -> None:
        self.errors.append(error)

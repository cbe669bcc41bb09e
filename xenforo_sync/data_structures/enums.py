from __future__ import annotations

from enum import IntEnum, StrEnum


class MediaType(IntEnum):
    IMAGE = 1
    VIDEO = 2
    LINK = 3

    @property
    def downloadable(self) -> bool:
        return self is not MediaType.LINK


class MediaTypeFilter(IntEnum):
    ALL = 0
    IMAGE = 1
    VIDEO = 2
    LINK = 3

    def media_types(self) -> tuple[MediaType, ...]:
        if self is MediaTypeFilter.ALL:
            return tuple(MediaType)
        return (MediaType(self.value),)


class JobType(StrEnum):
    SYNC_FORUMS = "sync_forums"
    SYNC_FORUM_THREADS = "sync_forum_threads"
    SYNC_ALL_FORUMS_AND_THREADS = "sync_all_forums_and_threads"
    SYNC_THREAD_POSTS = "sync_thread_posts"
    DOWNLOAD_THREAD_MEDIA = "download_thread_media"


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def finished(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)

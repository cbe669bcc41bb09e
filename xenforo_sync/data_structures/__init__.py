from .enums import JobStatus, JobType, MediaType, MediaTypeFilter
from .ids import LocalId, RemoteId
from .records import (
    ExtractedForum,
    ExtractedMedia,
    ExtractedPost,
    ExtractedThread,
    Forum,
    Media,
    Post,
    Site,
    SyncJob,
    Thread,
)
from .stats import DownloadStats, Progress, SyncStats

__all__ = [
    "DownloadStats",
    "ExtractedForum",
    "ExtractedMedia",
    "ExtractedPost",
    "ExtractedThread",
    "Forum",
    "JobStatus",
    "JobType",
    "LocalId",
    "Media",
    "MediaType",
    "MediaTypeFilter",
    "Post",
    "Progress",
    "RemoteId",
    "Site",
    "SyncJob",
    "SyncStats",
    "Thread",
]

from __future__ import annotations

import dataclasses
import json
from typing import TYPE_CHECKING, Any, Self

from xenforo_sync.data_structures.enums import JobStatus, JobType, MediaType
from xenforo_sync.data_structures.ids import LocalId, RemoteId

if TYPE_CHECKING:
    from collections.abc import Mapping


# ~~~~~ Extracted from HTML, not persisted yet ~~~~~~~


@dataclasses.dataclass(slots=True, frozen=True)
class ExtractedForum:
    original_id: RemoteId
    name: str
    url: str


@dataclasses.dataclass(slots=True, frozen=True)
class ExtractedThread:
    original_id: RemoteId
    name: str
    url: str


@dataclasses.dataclass(slots=True, frozen=True)
class ExtractedMedia:
    url: str
    media_type: MediaType
    thumbnail_url: str | None = None
    caption: str | None = None
    filename: str | None = None
    mime_type: str | None = None
    original_id: RemoteId | None = None


@dataclasses.dataclass(slots=True, frozen=True)
class ExtractedPost:
    original_id: RemoteId
    username: str
    user_id: str | None
    content: str
    posted_at: str | None = None
    media: tuple[ExtractedMedia, ...] = ()


# ~~~~~ Persisted ~~~~~~~


class _Row:
    __slots__ = ()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self:
        values = dict(row)
        names = {field.name for field in dataclasses.fields(cls)}  # type: ignore[arg-type]
        return cls(**{name: value for name, value in values.items() if name in names})


@dataclasses.dataclass(slots=True)
class Site(_Row):
    id: LocalId
    url: str
    name: str | None = None


@dataclasses.dataclass(slots=True)
class Forum(_Row):
    id: LocalId
    site_id: LocalId
    original_id: RemoteId
    name: str
    original_url: str
    created_at: str | None = None
    updated_at: str | None = None


@dataclasses.dataclass(slots=True)
class Thread(_Row):
    id: LocalId
    forum_id: LocalId
    original_id: RemoteId
    name: str
    original_url: str
    last_sync_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclasses.dataclass(slots=True)
class Media(_Row):
    id: LocalId
    post_id: LocalId
    media_type_id: MediaType
    url: str
    original_id: RemoteId | None = None
    thumbnail_url: str | None = None
    filename: str | None = None
    caption: str | None = None
    is_downloaded: bool = False
    local_path: str | None = None
    mime_type: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        self.media_type_id = MediaType(self.media_type_id)
        self.is_downloaded = bool(self.is_downloaded)


@dataclasses.dataclass(slots=True)
class Post(_Row):
    id: LocalId
    thread_id: LocalId
    original_id: RemoteId
    username: str
    user_id: str | None
    content: str
    posted_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    media: list[Media] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(slots=True)
class SyncJob(_Row):
    id: LocalId
    job_type: JobType
    status: JobStatus
    site_id: LocalId | None = None
    forum_id: LocalId | None = None
    thread_id: LocalId | None = None
    entity_name: str | None = None
    progress: int = 0
    total_items: int = 0
    processed_items: int = 0
    current_step: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None

    def __post_init__(self) -> None:
        self.job_type = JobType(self.job_type)
        self.status = JobStatus(self.status)
        if isinstance(self.metadata, str):
            self.metadata = json.loads(self.metadata)
        elif self.metadata is None:
            self.metadata = {}

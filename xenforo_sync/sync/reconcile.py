from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Generic, TypeVar

from xenforo_sync.utils.logger import log

if TYPE_CHECKING:
    from collections.abc import Iterable

    from xenforo_sync.data_structures import (
        ExtractedForum,
        ExtractedPost,
        ExtractedThread,
        Forum,
        LocalId,
        Post,
        Thread,
    )
    from xenforo_sync.database import Database

_T = TypeVar("_T")


@dataclasses.dataclass(slots=True)
class Reconciled(Generic[_T]):
    records: list[_T] = dataclasses.field(default_factory=list)
    created: int = 0
    updated: int = 0

    def add(self, record: _T, created: bool) -> None:
        self.records.append(record)
        if created:
            self.created += 1
        else:
            self.updated += 1


class Reconciler:
    """Maps extracted records onto stored rows by their natural keys.

    Records are processed one at a time: each post (and its whole media set) is stored before the next one"""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def forums(self, site_id: LocalId, extracted: Iterable[ExtractedForum]) -> Reconciled[Forum]:
        result: Reconciled[Forum] = Reconciled()
        for forum in extracted:
            row, created = await self.database.forums.upsert(site_id, forum)
            result.add(row, created)
        return result

    async def threads(self, forum_id: LocalId, extracted: Iterable[ExtractedThread]) -> Reconciled[Thread]:
        result: Reconciled[Thread] = Reconciled()
        for thread in extracted:
            row, created = await self.database.threads.upsert(forum_id, thread)
            result.add(row, created)
        return result

    async def posts(self, thread_id: LocalId, extracted: Iterable[ExtractedPost]) -> Reconciled[Post]:
        result: Reconciled[Post] = Reconciled()
        for post in extracted:
            row, created = await self.post(thread_id, post)
            result.add(row, created)
        return result

    async def post(self, thread_id: LocalId, extracted: ExtractedPost) -> tuple[Post, bool]:
        posts = self.database.posts
        if existing := await posts.get_by_original_id(thread_id, extracted.original_id):
            post = await posts.update(existing.id, extracted)
            created = False
        else:
            post = await posts.insert(thread_id, extracted)
            created = True

        new_media = 0
        for media in extracted.media:
            _, media_created = await self.database.media.upsert(post.id, media)
            new_media += media_created

        post.media = await self.database.media.all_in_post(post.id)
        if new_media:
            log(f"Post {extracted.original_id}: {new_media} new media", 10)
        return post, created

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from xenforo_sync.data_structures import (
    ExtractedForum,
    ExtractedMedia,
    ExtractedPost,
    ExtractedThread,
    MediaType,
    RemoteId,
)
from xenforo_sync.sync import Reconciler

if TYPE_CHECKING:
    from xenforo_sync.data_structures import Forum, Site, Thread
    from xenforo_sync.database import Database

SITE_URL = "https://forum.example.com"


def _media(url: str, media_type: MediaType = MediaType.IMAGE, caption: str | None = None) -> ExtractedMedia:
    return ExtractedMedia(url=url, media_type=media_type, caption=caption, filename=url.rsplit("/", 1)[-1])


def _post(original_id: str, content: str = "hello", *media: ExtractedMedia) -> ExtractedPost:
    return ExtractedPost(
        original_id=RemoteId(original_id),
        username="poster",
        user_id="7",
        content=content,
        posted_at="2024-05-01T10:00:00+0000",
        media=media,
    )


@pytest.fixture
def reconciler(db: Database) -> Reconciler:
    return Reconciler(db)


@pytest.fixture
async def site_row(db: Database) -> Site:
    return await db.sites.add(SITE_URL)


@pytest.fixture
async def forum_row(db: Database, site_row: Site) -> Forum:
    forum, _ = await db.forums.upsert(site_row.id, ExtractedForum(RemoteId("2"), "News", f"{SITE_URL}/forums/news.2/"))
    return forum


@pytest.fixture
async def thread_row(db: Database, forum_row: Forum) -> Thread:
    extracted = ExtractedThread(RemoteId("10"), "First", f"{SITE_URL}/threads/first.10/")
    thread, _ = await db.threads.upsert(forum_row.id, extracted)
    return thread


async def test_forums_are_keyed_by_original_id(reconciler: Reconciler, db: Database, site_row: Site) -> None:
    extracted = [
        ExtractedForum(RemoteId("2"), "News", f"{SITE_URL}/forums/news.2/"),
        ExtractedForum(RemoteId("3"), "General", f"{SITE_URL}/forums/general.3/"),
    ]
    first = await reconciler.forums(site_row.id, extracted)
    assert (first.created, first.updated) == (2, 0)

    renamed = [ExtractedForum(RemoteId("2"), "Announcements", f"{SITE_URL}/forums/announcements.2/"), extracted[1]]
    second = await reconciler.forums(site_row.id, renamed)
    assert (second.created, second.updated) == (0, 2)
    assert [forum.id for forum in second.records] == [forum.id for forum in first.records]

    forums = await db.forums.all_in_site(site_row.id)
    assert [(forum.original_id, forum.name) for forum in forums] == [("2", "Announcements"), ("3", "General")]
    assert forums[0].original_url == f"{SITE_URL}/forums/announcements.2/"


async def test_same_original_id_on_another_site(reconciler: Reconciler, db: Database, site_row: Site) -> None:
    other_site = await db.sites.add("https://other.example.org")
    forum = ExtractedForum(RemoteId("2"), "News", f"{SITE_URL}/forums/news.2/")
    first = await reconciler.forums(site_row.id, [forum])
    second = await reconciler.forums(other_site.id, [forum])
    assert second.created == 1
    assert first.records[0].id != second.records[0].id


async def test_threads_are_keyed_by_forum(reconciler: Reconciler, db: Database, forum_row: Forum) -> None:
    extracted = [ExtractedThread(RemoteId("10"), "First", f"{SITE_URL}/threads/first.10/")]
    first = await reconciler.threads(forum_row.id, extracted)
    second = await reconciler.threads(forum_row.id, extracted)
    assert (first.created, second.created, second.updated) == (1, 0, 1)
    assert first.records[0].id == second.records[0].id
    assert len(await db.threads.all_in_forum(forum_row.id)) == 1


async def test_posts_and_media_are_idempotent(reconciler: Reconciler, db: Database, thread_row: Thread) -> None:
    extracted = [
        _post(
            "100",
            "first",
            _media("https://img.example.org/a.jpg"),
            _media("https://img.example.org/b.mp4", MediaType.VIDEO),
        ),
        _post("101", "second"),
    ]
    first = await reconciler.posts(thread_row.id, extracted)
    second = await reconciler.posts(thread_row.id, extracted)

    assert (first.created, first.updated) == (2, 0)
    assert (second.created, second.updated) == (0, 2)
    assert [post.id for post in first.records] == [post.id for post in second.records]

    post = second.records[0]
    assert [(media.url, media.media_type_id) for media in post.media] == [
        ("https://img.example.org/a.jpg", MediaType.IMAGE),
        ("https://img.example.org/b.mp4", MediaType.VIDEO),
    ]
    assert all(not media.is_downloaded for media in post.media)
    assert len(await db.media.all_in_thread(thread_row.id)) == 2


async def test_edited_post_is_updated_in_place(reconciler: Reconciler, db: Database, thread_row: Thread) -> None:
    original, created = await reconciler.post(thread_row.id, _post("100", "before"))
    assert created
    edited, created = await reconciler.post(
        thread_row.id, _post("100", "after", _media("https://img.example.org/new.png", caption="new"))
    )

    assert not created
    assert edited.id == original.id
    assert edited.content == "after"
    assert [media.caption for media in edited.media] == ["new"]
    assert len(await db.posts.all_in_thread(thread_row.id)) == 1


async def test_media_update_keeps_download_state(reconciler: Reconciler, db: Database, thread_row: Thread) -> None:
    url = "https://img.example.org/a.jpg"
    post, _ = await reconciler.post(thread_row.id, _post("100", "x", _media(url, caption="old")))
    await db.media.mark_downloaded([post.media[0].id], "downloads/thread-10/a.jpg", "image/jpeg")

    post, _ = await reconciler.post(thread_row.id, _post("100", "x", _media(url, caption="new")))
    (media,) = post.media
    assert media.caption == "new"
    assert media.is_downloaded
    assert media.local_path == "downloads/thread-10/a.jpg"
    assert media.mime_type == "image/jpeg"


async def test_same_url_in_two_posts_creates_two_rows(reconciler: Reconciler, db: Database, thread_row: Thread) -> None:
    url = "https://img.example.org/shared.jpg"
    await reconciler.posts(thread_row.id, [_post("100", "a", _media(url)), _post("101", "b", _media(url))])
    rows = await db.media.all_in_thread(thread_row.id)
    assert [row.url for row in rows] == [url, url]
    assert len({row.post_id for row in rows}) == 2


async def test_media_type_filter(reconciler: Reconciler, db: Database, thread_row: Thread) -> None:
    media = (
        _media("https://img.example.org/a.jpg"),
        _media("https://img.example.org/b.mp4", MediaType.VIDEO),
        _media("https://blog.example.org/post", MediaType.LINK),
    )
    await reconciler.post(thread_row.id, _post("100", "x", *media))
    videos = await db.media.all_in_thread(thread_row.id, (MediaType.VIDEO,))
    assert [row.url for row in videos] == ["https://img.example.org/b.mp4"]
    assert await db.media.all_in_thread(thread_row.id, ()) == []

"""Pure functions that turn XenForo pages into extracted records.

Every function takes an already parsed document, so they can be tested against fixture HTML.
Records whose id can not be parsed are dropped silently: they are usually ads, sticky notices or deleted content"""

from __future__ import annotations

from typing import TYPE_CHECKING

from yarl import URL

from xenforo_sync import constants
from xenforo_sync.data_structures import ExtractedForum, ExtractedPost, ExtractedThread, RemoteId
from xenforo_sync.parsing.media import extract_post_media
from xenforo_sync.parsing.selectors import DEFAULT_SELECTORS, XenforoSelectors
from xenforo_sync.utils import css
from xenforo_sync.utils.utilities import parse_url, same_site

if TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag


def parse_original_id(value: str | None, section: str | None = None) -> RemoteId | None:
    """Gets the site's numeric id from an href or an element id.

    Handles `/forums/42/`, `/threads/some-title.123/`, `/threads/thread-123/`, `post-456` and `js-post-456`.

    If `section` is given (ex: `threads`), the path segment right after it is used instead of the last one"""
    if not value:
        return None
    value = value.strip()
    if "/" in value:
        parts = [part for part in URL(value).path.split("/") if part]
        segment = None
        if section and section in parts:
            index = parts.index(section)
            segment = parts[index + 1] if index + 1 < len(parts) else None
        elif parts:
            segment = parts[-1]
    else:
        segment = value

    if not segment:
        return None
    for prefix in constants.ID_PREFIXES:
        segment = segment.removeprefix(prefix)
    if segment.isascii() and segment.isdigit():
        return RemoteId(segment)
    if match := constants.TRAILING_ID_PATTERN.search(segment):
        return RemoteId(match.group(1))
    return None


def _same_site_path(href: str, site_url: URL, prefix: str) -> URL | None:
    url = parse_url(href, site_url)
    if not same_site(url, site_url) or not url.path.startswith(prefix):
        return None
    return url


def extract_forums(
    soup: BeautifulSoup | Tag, site_url: URL, selectors: XenforoSelectors = DEFAULT_SELECTORS
) -> list[ExtractedForum]:
    forums: dict[RemoteId, ExtractedForum] = {}
    for anchor in css.iselect(soup, selectors.listing.forum):
        href = css.get_attr_or_none(anchor, "href")
        if not href or not (url := _same_site_path(href, site_url, "/forums/")):
            continue
        if not (original_id := parse_original_id(url.path, "forums")):
            continue
        if original_id not in forums:
            forums[original_id] = ExtractedForum(original_id, css.get_text(anchor), str(url))
    return list(forums.values())


def extract_threads(
    soup: BeautifulSoup | Tag, site_url: URL, selectors: XenforoSelectors = DEFAULT_SELECTORS
) -> list[ExtractedThread]:
    anchors = soup.select(selectors.listing.thread) or soup.select(selectors.listing.thread_fallback)
    threads: dict[RemoteId, ExtractedThread] = {}
    for anchor in anchors:
        href = css.get_attr_or_none(anchor, "href")
        if not href or not (url := _same_site_path(href, site_url, "/threads/")):
            continue
        if not (original_id := parse_original_id(url.path, "threads")):
            continue
        if original_id not in threads:
            threads[original_id] = ExtractedThread(original_id, css.get_text(anchor), str(url))
    return list(threads.values())


def extract_posts(
    soup: BeautifulSoup | Tag, site_url: URL, selectors: XenforoSelectors = DEFAULT_SELECTORS
) -> list[ExtractedPost]:
    posts: dict[RemoteId, ExtractedPost] = {}
    for article in css.iselect(soup, selectors.posts.article):
        raw_id = css.get_attr_or_none(article, "data-content") or css.get_attr_or_none(article, "id")
        if not (original_id := parse_original_id(raw_id)) or original_id in posts:
            continue
        posts[original_id] = extract_post(article, original_id, site_url, selectors)
    return list(posts.values())


def extract_post(
    article: Tag, original_id: RemoteId, site_url: URL, selectors: XenforoSelectors = DEFAULT_SELECTORS
) -> ExtractedPost:
    post_selectors = selectors.posts
    username = css.select_one_get_text_or_none(article, post_selectors.username)
    username = username or css.get_attr_or_none(article, "data-author") or ""
    user_id = next(filter(None, (selector.or_none(article) for selector in post_selectors.user_id)), None)
    posted_at = post_selectors.date.or_none(article) or post_selectors.fallback_date.or_none(article)
    content_tag = article.select_one(post_selectors.content)
    content = css.inner_html(content_tag) if content_tag else ""
    return ExtractedPost(
        original_id=original_id,
        username=username,
        user_id=user_id,
        content=content,
        posted_at=posted_at,
        media=extract_post_media(article, site_url, selectors.media),
    )

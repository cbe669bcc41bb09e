"""Media discovery inside a single post.

There are four independent sources: embedded images, `<video>` sources,
the attachment gallery and plain links to external files"""

from __future__ import annotations

from typing import TYPE_CHECKING

from yarl import URL

from xenforo_sync import constants
from xenforo_sync.data_structures import ExtractedMedia, MediaType, RemoteId
from xenforo_sync.parsing.selectors import DEFAULT_SELECTORS, MediaSelectors
from xenforo_sync.utils import css
from xenforo_sync.utils.utilities import parse_url, same_site, url_filename

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bs4 import Tag

_TRASH = ".message-signature", ".message-footer"


def _absolute_http_url(link: str | None, site_url: URL) -> URL | None:
    if not link or link.startswith(("data:", "blob:", "javascript:")):
        return None
    try:
        url = parse_url(link, site_url)
    except ValueError:
        return None
    if url.scheme not in ("http", "https") or not url.host:
        return None
    return url


def classify_link(link: str) -> MediaType:
    if constants.IMAGE_LINK_PATTERN.search(link):
        return MediaType.IMAGE
    if constants.VIDEO_LINK_PATTERN.search(link):
        return MediaType.VIDEO
    return MediaType.LINK


def extract_inline_images(
    tag: Tag, site_url: URL, selectors: MediaSelectors = DEFAULT_SELECTORS.media
) -> list[ExtractedMedia]:
    media = []
    for img in css.iselect(tag, selectors.images):
        if not (url := _absolute_http_url(css.get_attr_or_none(img, "src"), site_url)):
            continue
        media.append(
            ExtractedMedia(
                url=str(url),
                media_type=MediaType.IMAGE,
                thumbnail_url=str(url),
                caption=css.get_attr_or_none(img, "alt") or None,
                filename=url_filename(url),
            )
        )
    return media


def extract_videos(tag: Tag, site_url: URL, selectors: MediaSelectors = DEFAULT_SELECTORS.media) -> list[ExtractedMedia]:
    media = []
    for source in css.iselect(tag, selectors.videos):
        if not (url := _absolute_http_url(css.get_attr_or_none(source, "src"), site_url)):
            continue
        media.append(
            ExtractedMedia(
                url=str(url),
                media_type=MediaType.VIDEO,
                mime_type=css.get_attr_or_none(source, "type") or None,
                filename=url_filename(url),
            )
        )
    return media


def _attachment_id(item: Tag, link: URL, selectors: MediaSelectors) -> RemoteId | None:
    # Best effort. Not every template renders the `attachment-<id>` anchor
    if anchor_id := css.select_one_get_attr_or_none(item, selectors.attachment_anchor, "id"):
        if (attachment_id := anchor_id.removeprefix("attachment-")).isdigit():
            return RemoteId(attachment_id)
    if link.fragment.startswith("attachment-"):
        if (attachment_id := link.fragment.removeprefix("attachment-")).isdigit():
            return RemoteId(attachment_id)
    if match := constants.TRAILING_ID_PATTERN.search(link.path.rstrip("/")):
        return RemoteId(match.group(1))
    return None


def extract_attachments(
    tag: Tag, site_url: URL, selectors: MediaSelectors = DEFAULT_SELECTORS.media
) -> list[ExtractedMedia]:
    media = []
    for item in css.iselect(tag, selectors.attachments):
        href = css.select_one_get_attr_or_none(item, selectors.attachment_link, "href")
        if not (url := _absolute_http_url(href, site_url)):
            continue
        thumbnail = _absolute_http_url(
            css.select_one_get_attr_or_none(item, selectors.attachment_thumbnail, "src"), site_url
        )
        name = css.select_one_get_text_or_none(item, selectors.attachment_name)
        media_type = MediaType.VIDEO if name and constants.VIDEO_LINK_PATTERN.search(name) else MediaType.IMAGE
        media.append(
            ExtractedMedia(
                url=str(url.with_fragment(None)),
                media_type=media_type,
                thumbnail_url=str(thumbnail) if thumbnail else None,
                caption=name,
                filename=name,
                original_id=_attachment_id(item, url, selectors),
            )
        )
    return media


def extract_linked_media(
    tag: Tag, site_url: URL, selectors: MediaSelectors = DEFAULT_SELECTORS.media
) -> list[ExtractedMedia]:
    """External links of the post body. Same site, relative and anchor links are ignored"""
    media = []
    for anchor in css.iselect(tag, selectors.links):
        href = (css.get_attr_or_none(anchor, "href") or "").strip()
        if not href or href.startswith(("#", "/")):
            continue
        url = _absolute_http_url(href, site_url)
        if url is None or not URL(href).absolute or same_site(url, site_url):
            continue
        url = url.with_fragment(None)
        media_type = classify_link(str(url))
        media.append(
            ExtractedMedia(
                url=str(url),
                media_type=media_type,
                filename=url_filename(url) if media_type is not MediaType.LINK else None,
            )
        )
    return media


def _dedupe(media: Iterable[ExtractedMedia]) -> tuple[ExtractedMedia, ...]:
    unique: dict[str, ExtractedMedia] = {}
    for item in media:
        unique.setdefault(item.url, item)
    return tuple(unique.values())


def extract_post_media(
    article: Tag, site_url: URL, selectors: MediaSelectors = DEFAULT_SELECTORS.media
) -> tuple[ExtractedMedia, ...]:
    """All the media of a post, deduped by URL (first source wins)"""
    for trash in article.select(", ".join(_TRASH)):
        trash.decompose()

    content = article.select_one(".message-content") or article
    return _dedupe(
        (
            *extract_inline_images(article, site_url, selectors),
            *extract_videos(article, site_url, selectors),
            *extract_attachments(article, site_url, selectors),
            *extract_linked_media(content, site_url, selectors),
        )
    )

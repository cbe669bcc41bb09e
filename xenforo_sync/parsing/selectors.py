# ruff : noqa: RUF009
from __future__ import annotations

import dataclasses

from xenforo_sync.utils import css

Selector = css.CssAttributeSelector


@dataclasses.dataclass(frozen=True, slots=True)
class ListingSelectors:
    forum: str = ".node.node--forum .node-body .node-title a[href]"
    thread: str = '.structItem-title a[data-xf-init="preview-tooltip"][href]'
    # Some templates render thread titles without the tooltip init
    thread_fallback: str = ".structItem-title a[href*='threads/']"
    thread_row: str = ".structItem--thread"


@dataclasses.dataclass(frozen=True, slots=True)
class PostSelectors:
    article: str = "article.message"
    username: str = ".message-name"
    user_id: tuple[Selector, ...] = (
        Selector(".message-userInfo[data-user-id]", "data-user-id"),
        Selector(".message-name [data-user-id]", "data-user-id"),
    )
    content: str = ".message-content .bbWrapper"
    date: Selector = Selector(".message-attribution time[datetime]", "datetime")
    fallback_date: Selector = Selector("time[datetime]", "datetime")


@dataclasses.dataclass(frozen=True, slots=True)
class MediaSelectors:
    images: str = "img.bbImage"
    videos: str = "video source[src]"
    attachments: str = ".attachmentList .file--linked"
    attachment_link: str = "a.file-preview[href]"
    attachment_thumbnail: str = "img"
    attachment_name: str = ".file-name"
    attachment_anchor: str = "[id^='attachment-']"
    links: str = "a[href]"


@dataclasses.dataclass(frozen=True, slots=True)
class PaginationSelectors:
    last_page_jump: tuple[Selector, ...] = (
        Selector("a.pageNavSimple-el.pageNavSimple-el--last[href]", "href"),
        Selector("a.pageNav-jump--last[href]", "href"),
    )
    page_numbers: str = ".pageNav-page"


@dataclasses.dataclass(frozen=True, slots=True)
class XenforoSelectors:
    listing: ListingSelectors = ListingSelectors()
    posts: PostSelectors = PostSelectors()
    media: MediaSelectors = MediaSelectors()
    pagination: PaginationSelectors = PaginationSelectors()


DEFAULT_SELECTORS = XenforoSelectors()

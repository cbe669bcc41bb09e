from __future__ import annotations

from typing import TYPE_CHECKING

from xenforo_sync import constants
from xenforo_sync.parsing.selectors import DEFAULT_SELECTORS, XenforoSelectors
from xenforo_sync.utils import css

if TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

    from xenforo_sync.data_structures import RemoteId


def forum_page_path(original_id: RemoteId, page: int = 1) -> str:
    path = f"/forums/{original_id}/"
    return path if page <= 1 else f"{path}page-{page}/"


def thread_page_path(original_id: RemoteId, page: int = 1) -> str:
    path = f"/threads/{original_id}/"
    return path if page <= 1 else f"{path}page-{page}/"


def thread_listing_items(selectors: XenforoSelectors = DEFAULT_SELECTORS) -> str:
    listing = selectors.listing
    return ", ".join((listing.thread_row, listing.thread, listing.thread_fallback))


def last_page(
    soup: BeautifulSoup | Tag, item_selector: str | None = None, selectors: XenforoSelectors = DEFAULT_SELECTORS
) -> int:
    """Number of pages of a forum or thread listing.

    1. the "jump to last page" control
    2. the highest visible page number
    3. 1 if there is any item on the page (`item_selector`), 0 otherwise"""
    pagination = selectors.pagination
    for selector in pagination.last_page_jump:
        href = selector.or_none(soup)
        if href and (match := constants.PAGE_NUMBER_PATTERN.search(href)):
            return int(match.group(1))

    page_numbers = [int(text) for tag in css.iselect(soup, pagination.page_numbers) if (text := css.get_text(tag)).isdigit()]
    if page_numbers:
        return max(page_numbers)

    if item_selector is None:
        return 1
    return 1 if soup.select_one(item_selector) else 0

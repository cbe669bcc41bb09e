from .extractors import extract_forums, extract_post, extract_posts, extract_threads, parse_original_id
from .media import (
    classify_link,
    extract_attachments,
    extract_inline_images,
    extract_linked_media,
    extract_post_media,
    extract_videos,
)
from .pagination import forum_page_path, last_page, thread_listing_items, thread_page_path
from .selectors import DEFAULT_SELECTORS, XenforoSelectors

__all__ = [
    "DEFAULT_SELECTORS",
    "XenforoSelectors",
    "classify_link",
    "extract_attachments",
    "extract_forums",
    "extract_inline_images",
    "extract_linked_media",
    "extract_post",
    "extract_post_media",
    "extract_posts",
    "extract_threads",
    "extract_videos",
    "forum_page_path",
    "last_page",
    "parse_original_id",
    "thread_listing_items",
    "thread_page_path",
]

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import bs4.css

from xenforo_sync.exceptions import ScrapeError

if TYPE_CHECKING:
    from collections.abc import Generator

    from bs4 import Tag


class SelectorError(ScrapeError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(422, message)


class CssAttributeSelector(NamedTuple):
    element: str
    attribute: str = ""

    def or_none(self, soup: Tag) -> str | None:
        return select_one_get_attr_or_none(soup, self.element, self.attribute)


def get_attr_or_none(tag: Tag, attribute: str) -> str | None:
    """Same as `tag.get(attribute)` but asserts the result is a single str

    `src` prefers `data-src`, where lazy loaded images keep the real URL"""
    if attribute == "src":
        value = tag.get("data-src") or tag.get(attribute)
    else:
        value = tag.get(attribute)
    if isinstance(value, list):
        if attribute == "class":
            return " ".join(value)
        raise SelectorError(f"Expected a single value for {attribute = !r}, got multiple")
    return value


def get_text(tag: Tag, strip: bool = True) -> str:
    return tag.get_text(strip=strip)


def select_one_get_text_or_none(tag: Tag, selector: str, strip: bool = True) -> str | None:
    if inner_tag := tag.select_one(selector):
        return get_text(inner_tag, strip) or None


def select_one_get_attr_or_none(tag: Tag, selector: str, attribute: str) -> str | None:
    if inner_tag := tag.select_one(selector):
        return get_attr_or_none(inner_tag, attribute)


def iselect(tag: Tag, selector: str) -> Generator[Tag]:
    """Same as `tag.select(selector)`, but it returns a generator instead of a list."""
    yield from bs4.css.CSS(tag).iselect(selector)


def inner_html(tag: Tag) -> str:
    return tag.decode_contents().strip()

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import yarl
from pydantic import AnyUrl, HttpUrl, TypeAdapter

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
_HTTP_URL_ADAPTER = TypeAdapter(HttpUrl)


def falsy_as(value: T, falsy_value: T, func: Callable[[T], T] | None = None) -> T:
    """If `value` is falsy, returns `falsy_value`

    If `value` is NOT falsy AND `func` is provided, returns `func(value)`

    Otherwise, returns `value` as is
    """
    if not value:
        return falsy_value
    if func is None:
        return value
    return func(value)


def falsy_as_none(value: T) -> T | None:
    return falsy_as(value, None)


def falsy_as_list(value: T) -> T | list:
    return falsy_as(value, [])


def to_yarl_url(value: AnyUrl | yarl.URL | str) -> yarl.URL:
    """Validates `value` as an absolute http(s) URL and returns it as a `yarl.URL`"""
    if isinstance(value, yarl.URL):
        value = str(value)
    url = _HTTP_URL_ADAPTER.validate_python(value)
    return yarl.URL(str(url))

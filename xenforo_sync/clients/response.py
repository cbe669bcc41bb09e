from __future__ import annotations

import asyncio
import dataclasses
from json import loads as json_loads
from typing import TYPE_CHECKING, Any, Self

from aiohttp import ClientResponse
from bs4 import BeautifulSoup
from yarl import URL

from xenforo_sync.exceptions import InvalidContentTypeError
from xenforo_sync.utils.utilities import parse_url

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from multidict import CIMultiDictProxy


@dataclasses.dataclass(slots=True, weakref_slot=True)
class Response:
    """Wrapper around `aiohttp.ClientResponse`.

    Non streamed responses are fully read before being returned by the client.
    Streamed responses must be closed by the caller (`async with response: ...`)"""

    content_type: str
    status: int
    headers: CIMultiDictProxy[str]
    url: URL
    location: URL | None

    _resp: ClientResponse | None = None
    _body: bytes | None = None
    _read_lock: asyncio.Lock = dataclasses.field(init=False, default_factory=asyncio.Lock)

    @classmethod
    def from_resp(cls, response: ClientResponse) -> Self:
        url = response.url
        content_type, location = cls.parse_headers(url, response.headers)
        return cls(
            content_type=content_type,
            status=response.status,
            headers=response.headers,
            url=url,
            location=location,
            _resp=response,
        )

    @staticmethod
    def parse_headers(url: URL, headers: CIMultiDictProxy[str]) -> tuple[str, URL | None]:
        if location := headers.get("location"):
            location = parse_url(location, url.origin())
        else:
            location = None

        content_type = (headers.get("Content-Type") or "").lower()
        return content_type, location

    @property
    def mime_type(self) -> str:
        return self.content_type.split(";", 1)[0].strip()

    @property
    def ok(self) -> bool:
        """Returns `True` if `status` is less than `400`, `False` if not."""
        return self.status < 400

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and self.location is not None

    @property
    def set_cookie_headers(self) -> list[str]:
        return self.headers.getall("Set-Cookie", [])

    async def read(self) -> bytes:
        if self._body is not None:
            return self._body
        assert self._resp is not None
        async with self._read_lock:
            if self._body is None:
                self._body = await self._resp.read()
        return self._body

    async def text(self, encoding: str | None = None) -> str:
        body = await self.read()
        charset = encoding or (self._resp.charset if self._resp else None) or "utf-8"
        return body.decode(charset, errors="replace")

    async def soup(self, encoding: str | None = None) -> BeautifulSoup:
        self._check_content_type("text", "html", expecting="HTML")
        return BeautifulSoup(await self.text(encoding), "html.parser")

    async def json(self, encoding: str | None = None) -> Any:
        self._check_content_type("text/plain", "json", expecting="JSON")
        return json_loads(await self.text(encoding))

    async def iter_chunked(self, size: int) -> AsyncGenerator[bytes]:
        if self._body is not None:
            for start in range(0, len(self._body), size):
                yield self._body[start : start + size]
            return
        assert self._resp is not None
        async for chunk in self._resp.content.iter_chunked(size):
            yield chunk

    def close(self) -> None:
        if self._resp is not None:
            self._resp.release()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *_) -> None:
        self.close()

    def _check_content_type(self, *content_types: str, expecting: str) -> None:
        if self.content_type and not any(type_ in self.content_type for type_ in content_types):
            msg = f"Received {self.content_type}, was expecting {expecting}"
            raise InvalidContentTypeError(message=msg, origin=self.url)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} [{self.status}] ({self.url})>"

from __future__ import annotations

import asyncio
import dataclasses
import json
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

from yarl import URL

from xenforo_sync.utils.logger import log

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from pathlib import Path


@dataclasses.dataclass(slots=True)
class Cookie:
    name: str
    value: str
    domain: str
    path: str = "/"
    expires: datetime | None = None
    secure: bool = False
    http_only: bool = False
    host_only: bool = True

    @property
    def key(self) -> tuple[str, str, str]:
        return self.name, self.domain, self.path

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (now or datetime.now(UTC))

    def matches(self, url: URL) -> bool:
        host = (url.host or "").lower()
        if self.host_only:
            if host != self.domain:
                return False
        elif host != self.domain and not host.endswith("." + self.domain):
            return False

        if self.secure and url.scheme != "https":
            return False

        return _path_matches(url.path or "/", self.path)


def _path_matches(request_path: str, cookie_path: str) -> bool:
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"


def _parse_expires(value: str) -> datetime | None:
    try:
        expires = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return expires


def parse_set_cookie(header: str, request_url: URL) -> Cookie | None:
    """Parses a single `Set-Cookie` header value. Returns `None` if it has no `name=value` pair"""
    pair, *attributes = header.split(";")
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        return None

    cookie = Cookie(name, value.strip().strip('"'), (request_url.host or "").lower())
    max_age_seen = False
    for attribute in attributes:
        attr_name, _, attr_value = attribute.partition("=")
        attr_name = attr_name.strip().lower()
        attr_value = attr_value.strip()
        if attr_name == "expires" and not max_age_seen:
            cookie.expires = _parse_expires(attr_value)
        elif attr_name == "max-age":
            try:
                seconds = int(attr_value)
            except ValueError:
                continue
            max_age_seen = True
            cookie.expires = datetime.now(UTC) + timedelta(seconds=seconds)
        elif attr_name == "domain" and attr_value:
            cookie.domain = attr_value.lstrip(".").lower()
            cookie.host_only = False
        elif attr_name == "path" and attr_value.startswith("/"):
            cookie.path = attr_value
        elif attr_name == "secure":
            cookie.secure = True
        elif attr_name == "httponly":
            cookie.http_only = True

    return cookie


class CookieStore:
    """Per client cookie storage.

    Keeps every cookie the site sets (from any response, including redirects)
    and composes the `Cookie` header for outgoing requests."""

    def __init__(self) -> None:
        self._cookies: dict[tuple[str, str, str], Cookie] = {}

    def __len__(self) -> int:
        return len(self._cookies)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def __contains__(self, name: object) -> bool:
        return any(cookie.name == name for cookie in self._cookies.values())

    def add(self, cookie: Cookie) -> None:
        """Adds or replaces a cookie. An expired cookie removes the stored one"""
        if cookie.is_expired():
            self._cookies.pop(cookie.key, None)
            return
        self._cookies[cookie.key] = cookie

    def set_cookie(self, header: str, request_url: URL) -> Cookie | None:
        if cookie := parse_set_cookie(header, request_url):
            self.add(cookie)
        return cookie

    def update_from_headers(self, headers: Iterable[str], request_url: URL) -> list[Cookie]:
        return [cookie for header in headers if (cookie := self.set_cookie(header, request_url))]

    def update(self, cookies: Mapping[str, str], url: URL) -> None:
        """Adds plain `name=value` cookies, scoped to the whole domain of `url`"""
        domain = (url.host or "").lower()
        for name, value in cookies.items():
            self.add(Cookie(name, value, domain, "/", host_only=False))

    def get(self, name: str, url: URL | None = None) -> str | None:
        cookies = self.cookies_for(url) if url else list(self)
        return next((cookie.value for cookie in cookies if cookie.name == name), None)

    def cookies_for(self, url: URL) -> list[Cookie]:
        self._remove_expired()
        matching = [cookie for cookie in self._cookies.values() if cookie.matches(url)]
        # More specific paths first
        return sorted(matching, key=lambda cookie: len(cookie.path), reverse=True)

    def header_for(self, url: URL, extra: Mapping[str, str] | None = None) -> str | None:
        """Composes the `Cookie` header for `url`. `extra` cookies override stored ones with the same name"""
        values: dict[str, str] = {}
        for cookie in self.cookies_for(url):
            values.setdefault(cookie.name, cookie.value)
        if extra:
            values.update(extra)
        if not values:
            return None
        return "; ".join(f"{name}={value}" for name, value in values.items())

    def clear(self) -> None:
        self._cookies.clear()

    def _remove_expired(self) -> None:
        now = datetime.now(UTC)
        for key in [key for key, cookie in self._cookies.items() if cookie.is_expired(now)]:
            del self._cookies[key]

    async def load_file(self, file: Path, site_url: URL) -> int:
        """Loads an exported `cookies.json` file (a list of `{name, value, domain?, path?}` objects)"""
        entries = json.loads(await asyncio.to_thread(file.read_text, encoding="utf8"))
        if isinstance(entries, dict):
            entries = [{"name": name, "value": value} for name, value in entries.items()]
        default_domain = (site_url.host or "").lower()
        count = 0
        for entry in entries:
            name, value = entry.get("name"), entry.get("value")
            if not name or value is None:
                continue
            domain = str(entry.get("domain") or default_domain)
            self.add(
                Cookie(
                    name,
                    str(value),
                    domain.lstrip(".").lower(),
                    entry.get("path") or "/",
                    secure=bool(entry.get("secure", False)),
                    http_only=bool(entry.get("httpOnly", False)),
                    host_only=False,
                )
            )
            count += 1
        log(f"Loaded {count} cookies from {file}", 20)
        return count

    async def save_file(self, file: Path) -> int:
        """Writes the stored cookies in the format `load_file` reads"""
        self._remove_expired()
        entries = [
            {
                "name": cookie.name,
                "value": cookie.value,
                "domain": cookie.domain,
                "path": cookie.path,
                "secure": cookie.secure,
                "httpOnly": cookie.http_only,
            }
            for cookie in self._cookies.values()
        ]
        await asyncio.to_thread(file.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(file.write_text, json.dumps(entries, indent=2), encoding="utf8")
        return len(entries)

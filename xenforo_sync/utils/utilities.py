from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime
from pathlib import Path

from yarl import URL

from xenforo_sync import constants


def utc_now() -> str:
    return datetime.now(UTC).isoformat()


def sanitize_filename(name: str, sub: str = "") -> str:
    """Simple sanitization to remove illegal characters from filename."""
    clean_name = re.sub(constants.SANITIZE_FILENAME_PATTERN, sub, name)
    return clean_name.strip().strip(".")


def parse_url(link: str, relative_to: URL | str | None = None) -> URL:
    """Parses a link, resolving it against `relative_to` when it is not absolute."""
    url = URL(link.strip())
    if url.absolute or relative_to is None:
        return url
    base = relative_to if isinstance(relative_to, URL) else URL(str(relative_to))
    return base.join(url)


def same_site(url: URL, site_url: URL) -> bool:
    if not url.host or not site_url.host:
        return True
    return url.host.removeprefix("www.") == site_url.host.removeprefix("www.")


def url_filename(url: URL) -> str | None:
    """Last non-empty path segment of `url`, without query or fragment."""
    name = next((part for part in reversed(url.parts) if part and part != "/"), None)
    return name or None


async def file_exists(path: Path) -> bool:
    return await asyncio.to_thread(path.is_file)


async def get_size_or_none(path: Path) -> int | None:
    try:
        stat = await asyncio.to_thread(path.stat)
    except (OSError, ValueError):
        return None
    return stat.st_size


async def delete_file(path: Path) -> None:
    await asyncio.to_thread(path.unlink, missing_ok=True)

from __future__ import annotations

import asyncio
import random
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

from aiolimiter import AsyncLimiter

from xenforo_sync import constants
from xenforo_sync.config import HttpSettings, RateLimitSettings
from xenforo_sync.utils.logger import log

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


class RateLimiter:
    """Owns every throttling decision of a sync: request rate, retry backoff, page and download pauses.

    All pauses go through `sleep`, so tests (or callers) can swap it out."""

    def __init__(self, settings: RateLimitSettings | None = None, http: HttpSettings | None = None) -> None:
        self.settings = settings or RateLimitSettings()
        self.http = http or HttpSettings()
        self._limiter = AsyncLimiter(self.settings.requests_per_second, 1)

    @property
    def max_retries(self) -> int:
        return self.http.max_retries

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def acquire(self) -> None:
        await self._limiter.acquire()

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(self, *_) -> None:
        return None

    def backoff_delay(self, attempt: int) -> float:
        """`retry_delay * 2^(attempt-1)` plus up to 100ms of jitter"""
        base = self.http.retry_delay * 2 ** max(attempt - 1, 0)
        return base + random.uniform(0, constants.MAX_BACKOFF_JITTER)

    async def backoff(self, attempt: int) -> float:
        delay = self.backoff_delay(attempt)
        log(f"Retrying in {delay:.2f}s (attempt {attempt}/{self.max_retries})", 20)
        await self.sleep(delay)
        return delay

    async def page_pause(self) -> None:
        if self.settings.page_delay:
            await self.sleep(self.settings.page_delay)

    async def download_pause(self) -> None:
        if delay := self.settings.download_delay:
            await self.sleep(delay)

    def retry_after_seconds(self, retry_after: str | float | None) -> float:
        """Seconds to wait for a `retry-after` value, either delay seconds or an HTTP-date"""
        if retry_after is None or retry_after == "":
            return self.settings.rate_limit_default_wait
        try:
            return max(float(retry_after), 0)
        except (TypeError, ValueError):
            pass
        try:
            retry_at = parsedate_to_datetime(str(retry_after))
        except (TypeError, ValueError):
            return self.settings.rate_limit_default_wait
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=UTC)
        return max((retry_at - datetime.now(UTC)).total_seconds(), 0)

    async def rate_limited(self, retry_after: str | float | None) -> float:
        seconds = self.retry_after_seconds(retry_after)
        log(f"Rate limited, waiting {seconds:g}s before continuing", 30)
        await self.sleep(seconds)
        return seconds

    async def pages(self, count: int, start: int = 1) -> AsyncGenerator[int]:
        """Yields page numbers `start..count`, pausing between pages"""
        for page in range(start, count + 1):
            if page > start:
                await self.page_pause()
            yield page

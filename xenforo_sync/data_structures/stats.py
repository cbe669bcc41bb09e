from __future__ import annotations

import dataclasses
from typing import Any


@dataclasses.dataclass(slots=True, frozen=True)
class Progress:
    processed: int
    total: int
    current_step: str = ""

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return min(100, round(self.processed * 100 / self.total))


@dataclasses.dataclass(slots=True)
class SyncStats:
    pages: int = 0
    total: int = 0
    created: int = 0
    updated: int = 0

    def add(self, created: int, updated: int) -> None:
        self.created += created
        self.updated += updated
        self.total += created + updated

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(slots=True)
class DownloadStats:
    total: int = 0
    downloaded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.downloaded + self.failed + self.skipped

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

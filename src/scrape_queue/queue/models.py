"""Domain models for the scrape command queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class TaskStatus(IntEnum):
    """Durable command lifecycle states, stored as integers."""

    PENDING = 0
    DONE = 1


class FetchErrorPolicy(str, Enum):
    """What a drain does when a task cannot fetch its target."""

    ABORT = "abort"
    SKIP = "skip"


@dataclass(slots=True, frozen=True)
class ScrapeResult:
    """Titled result produced by a leaf task."""

    task_id: int | None
    url: str
    title: str
    excerpt: str = ""


@dataclass(slots=True)
class CommandRecordView:
    """Readable queue record for CLI inspection."""

    id: int
    kind: str
    status: TaskStatus
    fields: dict[str, Any]
    created_at: datetime
    completed_at: datetime | None


@dataclass(slots=True)
class DrainSummary:
    """Aggregate drain counters for CLI reporting."""

    executed: int = 0
    discovered: int = 0
    results: int = 0
    skipped_fetches: int = 0
    stopped: bool = False
    kinds: dict[str, int] = field(default_factory=dict)

"""Domain entities for dataset import jobs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ImportProgress:
    """Counters of a single parse run at a point in time."""

    processed: int = 0
    inserted: int = 0
    failed: int = 0
    total: int | None = None


@dataclass(slots=True)
class JobState:
    """Represents one asynchronous import run as seen by status queries."""

    id: str
    parser: str
    batch_size: int
    status: JobStatus = JobStatus.PENDING
    processed: int = 0
    inserted: int = 0
    failed: int = 0
    total: int | None = None
    error: str | None = None
    started_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

"""Process-wide table of import jobs.

Entries are created by ``start_import``, mutated only by the worker that owns
the job and read by any number of status queries. Entries are never evicted,
so memory grows with the number of jobs started in the process lifetime.
"""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from persona_import.domain import ImportProgress, JobState, JobStatus

_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.FAILED},
    JobStatus.RUNNING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class JobRepository(Protocol):
    """Persistence contract for job state."""

    def next_job_id(self) -> str: ...

    def create(self, parser: str, batch_size: int) -> JobState: ...

    def get(self, job_id: str) -> JobState | None: ...

    def record_progress(self, job_id: str, progress: ImportProgress) -> None: ...

    def transition(self, job_id: str, status: JobStatus, *, error: str | None = None) -> JobState: ...

    def list_jobs(self) -> list[JobState]: ...

    def reset(self) -> None: ...


class InMemoryJobRepository:
    """Lock-guarded dictionary of :class:`JobState` entries.

    Reads hand out copies so callers never observe a half-applied update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, JobState] = {}
        self._job_counter = 0

    def next_job_id(self) -> str:
        with self._lock:
            self._job_counter += 1
            return f"import-{self._job_counter:05d}"

    def create(self, parser: str, batch_size: int) -> JobState:
        job = JobState(id=self.next_job_id(), parser=parser, batch_size=batch_size)
        with self._lock:
            self._jobs[job.id] = job
            return replace(job)

    def get(self, job_id: str) -> JobState | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def record_progress(self, job_id: str, progress: ImportProgress) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status.terminal:
                return
            job.processed = progress.processed
            job.inserted = progress.inserted
            job.failed = progress.failed
            if progress.total is not None:
                job.total = progress.total
            job.updated_at = datetime.now(timezone.utc)

    def transition(self, job_id: str, status: JobStatus, *, error: str | None = None) -> JobState:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(job_id)
            if status not in _TRANSITIONS[job.status]:
                raise ValueError(f"job {job_id} cannot move from {job.status.value} to {status.value}")
            job.status = status
            if error is not None:
                job.error = error
            job.updated_at = datetime.now(timezone.utc)
            return replace(job)

    def list_jobs(self) -> list[JobState]:
        with self._lock:
            return [replace(job) for job in self._jobs.values()]

    def reset(self) -> None:
        # ids stay unique across resets so late reports never reach a new job
        with self._lock:
            self._jobs.clear()

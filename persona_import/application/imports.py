"""Application service layer for dataset import orchestration."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from persona_import.core.errors import UnknownParserError
from persona_import.core.ingest import DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE, DatasetParser
from persona_import.domain import JobState, Tag
from persona_import.extractors.registry import default_parsers
from persona_import.infrastructure import (
    InMemoryJobRepository,
    InMemoryPersonaStore,
    InMemoryTagStore,
    JobRepository,
)
from persona_import.workers.pipeline import ImportRequest, ImportWorker

logger = logging.getLogger(__name__)


def effective_batch_size(batch_size: int | None) -> int:
    if batch_size is None:
        return DEFAULT_BATCH_SIZE
    return max(1, min(int(batch_size), MAX_BATCH_SIZE))


class DatasetImportService:
    """Starts import jobs and answers status queries about them."""

    def __init__(
        self,
        jobs: JobRepository,
        personas: InMemoryPersonaStore,
        tags: InMemoryTagStore,
        parsers: dict[str, DatasetParser] | None = None,
    ) -> None:
        self._jobs = jobs
        self._personas = personas
        self._tags = tags
        self._parsers: dict[str, DatasetParser] = dict(parsers if parsers is not None else default_parsers())
        self._worker = ImportWorker(jobs, personas, tags)
        self._requests: dict[str, ImportRequest] = {}

    # ------------------------------------------------------------------
    # parser registry
    # ------------------------------------------------------------------
    def register_parser(self, key: str, parser: DatasetParser) -> None:
        self._parsers[key] = parser

    def has_parser(self, key: str) -> bool:
        return key in self._parsers

    def parser_keys(self) -> list[str]:
        return sorted(self._parsers)

    # ------------------------------------------------------------------
    # job orchestration
    # ------------------------------------------------------------------
    async def start_import(self, file_path: Path | str, parser_key: str, batch_size: int | None = None) -> str:
        """Schedule an import and return its job id without waiting for it."""

        parser = self._parsers.get(parser_key)
        if parser is None:
            raise UnknownParserError(parser_key, list(self._parsers))

        size = effective_batch_size(batch_size)
        job = self._jobs.create(parser_key, size)
        request = ImportRequest(
            job_id=job.id,
            parser_key=parser_key,
            parser=parser,
            file_path=Path(file_path),
            batch_size=size,
        )
        self._requests[job.id] = request
        self._worker.launch(request)
        logger.info("import %s queued for %s", job.id, request.file_path.name)
        return job.id

    def get_job(self, job_id: str) -> JobState | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[JobState]:
        return self._jobs.list_jobs()

    def cancel_import(self, job_id: str) -> JobState | None:
        """Ask a running import to stop before its next record."""

        job = self._jobs.get(job_id)
        if job is None:
            return None
        request = self._requests.get(job_id)
        if request is not None and not job.status.terminal:
            request.cancel_event.set()
        return job

    async def wait_for(self, job_id: str) -> JobState | None:
        task = self._worker.task_for(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self._jobs.get(job_id)

    # ------------------------------------------------------------------
    # stored data
    # ------------------------------------------------------------------
    def list_personas(self) -> list[dict[str, object]]:
        return self._personas.list_personas()

    def list_tags(self) -> list[Tag]:
        return self._tags.list_tags()

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        for request in self._requests.values():
            request.cancel_event.set()
        self._requests.clear()
        self._jobs.reset()
        self._personas.reset()
        self._tags.reset()


_service = DatasetImportService(InMemoryJobRepository(), InMemoryPersonaStore(), InMemoryTagStore())


def get_import_service() -> DatasetImportService:
    """Return the import service shared by the process."""

    return _service


def reset_import_state() -> None:
    """Reset jobs and stored personas (used in tests)."""

    _service.reset()

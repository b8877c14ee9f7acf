from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from persona_import.core.errors import CancellationError
from persona_import.core.ingest import DatasetParser, ImportContext
from persona_import.core.uploads import discard_upload
from persona_import.domain import JobStatus
from persona_import.infrastructure import JobRepository, PersonaStore, TagStore

logger = logging.getLogger(__name__)


@dataclass
class ImportRequest:
    job_id: str
    parser_key: str
    parser: DatasetParser
    file_path: Path
    batch_size: int
    cancel_event: threading.Event = field(default_factory=threading.Event)


class ImportWorker:
    """Runs import jobs in the background and keeps their job state current.

    Each job is an ``asyncio`` task on the running loop; the parser itself runs
    in a worker thread so reads and store writes never block the loop.
    """

    def __init__(self, jobs: JobRepository, personas: PersonaStore, tags: TagStore) -> None:
        self._jobs = jobs
        self._personas = personas
        self._tags = tags
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def launch(self, request: ImportRequest) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._run(request), name=f"import:{request.job_id}")
        self._tasks[request.job_id] = task
        task.add_done_callback(partial(self._forget, request.job_id))
        return task

    def task_for(self, job_id: str) -> asyncio.Task[None] | None:
        return self._tasks.get(job_id)

    def _forget(self, job_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

    async def _settle(self, job_id: str, parsing: asyncio.Future) -> None:
        """Wait for an interrupted parse thread to stop so its last report lands."""

        try:
            progress = await asyncio.shield(parsing)
        except CancellationError:
            return
        except Exception:
            logger.exception("import %s failed while stopping", job_id)
            return
        self._jobs.record_progress(job_id, progress)

    async def _run(self, request: ImportRequest) -> None:
        job_id = request.job_id
        try:
            self._jobs.transition(job_id, JobStatus.RUNNING)
            logger.info("import %s started (parser=%s, batch_size=%d)", job_id, request.parser_key, request.batch_size)
            context = ImportContext(
                persona_store=self._personas,
                tag_store=self._tags,
                batch_size=request.batch_size,
                on_progress=partial(self._jobs.record_progress, job_id),
                cancel_event=request.cancel_event,
            )
            # the thread outlives a cancelled await, so keep a handle to it
            parsing = asyncio.ensure_future(asyncio.to_thread(request.parser.parse, request.file_path, context))
            try:
                progress = await asyncio.shield(parsing)
            except CancellationError as exc:
                logger.info("import %s cancelled", job_id)
                self._jobs.transition(job_id, JobStatus.FAILED, error=str(exc))
            except asyncio.CancelledError:
                logger.info("import %s interrupted, waiting for the parser to stop", job_id)
                request.cancel_event.set()
                await self._settle(job_id, parsing)
                self._jobs.transition(job_id, JobStatus.FAILED, error=str(CancellationError()))
                raise
            except Exception as exc:
                logger.exception("import %s failed", job_id)
                self._jobs.transition(job_id, JobStatus.FAILED, error=str(exc) or exc.__class__.__name__)
            else:
                self._jobs.record_progress(job_id, progress)
                self._jobs.transition(job_id, JobStatus.COMPLETED)
                logger.info(
                    "import %s completed: processed=%d inserted=%d failed=%d",
                    job_id,
                    progress.processed,
                    progress.inserted,
                    progress.failed,
                )
        finally:
            discard_upload(request.file_path)

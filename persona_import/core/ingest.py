"""Shared machinery for streaming dataset parsers.

Parsers turn a file into an iterator of raw records and hand it to
:class:`ImportRun`, which transforms each record, resolves its tags, buffers
the resulting personas and flushes them to the persona store in bounded
batches. Iteration is pull based: while :meth:`BatchAccumulator.flush` is
writing, nothing pulls the next record from the reader, so the reader is
paused for the duration of the flush and peak memory stays proportional to
the batch size rather than the file size.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from persona_import.core.errors import BatchPersistenceError, CancellationError, RecordValidationError
from persona_import.core.tags import TagResolver
from persona_import.domain import ImportProgress, PersonaRecord
from persona_import.infrastructure.personas import PersonaStore, TagStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 250
MAX_BATCH_SIZE = 1000
PROGRESS_INTERVAL = 1000

ProgressCallback = Callable[[ImportProgress], None]
RecordTransformer = Callable[[Any, TagResolver], PersonaRecord]


@dataclass
class ImportContext:
    persona_store: PersonaStore
    tag_store: TagStore
    batch_size: int = DEFAULT_BATCH_SIZE
    on_progress: ProgressCallback | None = None
    cancel_event: threading.Event | None = None
    progress_interval: int = PROGRESS_INTERVAL

    @property
    def effective_batch_size(self) -> int:
        return max(1, self.batch_size)


class DatasetParser(Protocol):
    """Contract shared by every pluggable dataset parser."""

    def parse(self, file_path: Path, context: ImportContext) -> ImportProgress:
        """Parse ``file_path`` and persist its personas, returning final counters."""


class BatchAccumulator:
    """Buffers personas and writes them to the store ``batch_size`` at a time."""

    def __init__(self, store: PersonaStore, batch_size: int, progress: ImportProgress) -> None:
        self._store = store
        self._batch_size = max(1, batch_size)
        self._progress = progress
        self._pending: list[PersonaRecord] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def add(self, persona: PersonaRecord) -> None:
        self._pending.append(persona)
        if len(self._pending) >= self._batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._pending:
            return
        size = len(self._pending)
        try:
            self._store.save(list(self._pending))
        except Exception as exc:
            error = exc if isinstance(exc, BatchPersistenceError) else BatchPersistenceError(str(exc))
            logger.warning("batch of %d personas rejected by store: %s", size, error)
            self._progress.failed += size
        else:
            self._progress.inserted += size
        finally:
            self._pending.clear()

    def discard(self) -> int:
        """Drop unflushed personas, counting them as failed."""

        size = len(self._pending)
        self._progress.failed += size
        self._pending.clear()
        return size


class ImportRun:
    """One pass of a parser over its records."""

    def __init__(self, context: ImportContext, transform: RecordTransformer) -> None:
        self._context = context
        self._transform = transform
        self.progress = ImportProgress()
        self.tags = TagResolver(context.tag_store)
        self.batch = BatchAccumulator(context.persona_store, context.effective_batch_size, self.progress)

    def snapshot(self) -> ImportProgress:
        return replace(self.progress)

    def report(self) -> None:
        if self._context.on_progress is not None:
            self._context.on_progress(self.snapshot())

    def announce_total(self, total: int | None) -> None:
        self.progress.total = total
        self.report()

    def consume(self, records: Iterable[Any]) -> ImportProgress:
        """Feed every record through transform and batching, then flush."""

        try:
            self._check_cancelled()
            for raw in records:
                self._check_cancelled()
                self._feed(raw)
            self.batch.flush()
        except BaseException:
            dropped = self.batch.discard()
            if dropped:
                logger.info("discarded %d unflushed personas after abort", dropped)
            self.report()
            raise
        self.report()
        return self.snapshot()

    def _check_cancelled(self) -> None:
        event = self._context.cancel_event
        if event is not None and event.is_set():
            raise CancellationError()

    def _feed(self, raw: Any) -> None:
        try:
            persona = self._transform(raw, self.tags)
        except RecordValidationError as exc:
            logger.debug("record %d rejected: %s", self.progress.processed + 1, exc)
            persona = None
        except Exception:
            logger.warning("record %d could not be transformed", self.progress.processed + 1, exc_info=True)
            persona = None

        self.progress.processed += 1
        if persona is None:
            self.progress.failed += 1
        else:
            self.batch.add(persona)

        interval = self._context.progress_interval
        if interval > 0 and self.progress.processed % interval == 0:
            self.report()

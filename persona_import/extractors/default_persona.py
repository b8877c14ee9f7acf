"""Generic persona dataset parser.

Accepts records shaped like ``{name, greeting, description, avatar?, tags?}``
as a JSON array, as NDJSON or as delimited text with a header row. Tags may
be a list, a JSON array string or a ``,``/``;``/``|`` separated string.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from persona_import.core.errors import RecordValidationError
from persona_import.core.ingest import ImportContext, ImportRun
from persona_import.core.schema import PersonaPayload
from persona_import.core.tags import TagResolver
from persona_import.domain import ImportProgress, PersonaRecord
from persona_import.extractors import detect
from persona_import.extractors.readers import (
    count_data_lines,
    iter_csv_records,
    iter_ndjson_lines,
    load_json_array,
)


def _describe(exc: ValidationError) -> str:
    fields = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
    if not fields:
        return "invalid record"
    return f"missing or invalid fields: {', '.join(fields)}"


def transform_record(raw: Any, tags: TagResolver) -> PersonaRecord:
    if not isinstance(raw, Mapping):
        raise RecordValidationError("record must be an object")
    try:
        payload = PersonaPayload.model_validate(dict(raw))
    except ValidationError as exc:
        raise RecordValidationError(_describe(exc)) from exc

    return PersonaRecord(
        id=payload.id,
        name=payload.name,
        greeting=payload.greeting,
        description=payload.description,
        avatar=payload.avatar,
        tags=tags.resolve_all(payload.tags),
    )


def transform_ndjson_line(line: str, tags: TagResolver) -> PersonaRecord:
    try:
        raw = json.loads(line)
    except json.JSONDecodeError as exc:
        raise RecordValidationError(f"invalid JSON line: {exc.msg}") from exc
    return transform_record(raw, tags)


class DefaultPersonaParser:
    """Schema-flexible parser registered under ``"default"``."""

    def parse(self, file_path: Path, context: ImportContext) -> ImportProgress:
        path = Path(file_path)
        detected = detect.detect(path)

        if detected.encoding == "json_array":
            items = load_json_array(path)
            run = ImportRun(context, transform_record)
            run.announce_total(len(items))
            return run.consume(items)

        if detected.encoding == "ndjson":
            run = ImportRun(context, transform_ndjson_line)
            run.announce_total(count_data_lines(path))
            return run.consume(iter_ndjson_lines(path))

        run = ImportRun(context, transform_record)
        run.announce_total(count_data_lines(path, header=True))
        return run.consume(iter_csv_records(path, context.effective_batch_size))

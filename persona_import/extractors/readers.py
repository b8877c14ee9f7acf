"""Incremental readers for the supported dataset encodings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from persona_import.core.errors import StreamFatalError

logger = logging.getLogger(__name__)


def count_data_lines(path: Path, *, header: bool = False) -> int | None:
    """Count non-blank lines, minus the header row when ``header`` is set.

    Used as a best-effort ``total`` estimate; quoted fields spanning several
    lines make it an overestimate.
    """

    try:
        with path.open("rb") as fp:
            count = sum(1 for line in fp if line.strip())
    except OSError as exc:
        logger.warning("unable to count lines of %s: %s", path.name, exc)
        return None
    if header:
        return max(0, count - 1)
    return count


def iter_csv_records(path: Path, chunk_size: int) -> Iterator[dict[str, Any]]:
    """Yield header-keyed rows, reading at most ``chunk_size`` rows at a time."""

    try:
        reader = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            encoding="utf-8-sig",
            chunksize=max(1, chunk_size),
        )
    except EmptyDataError:
        return
    except (ParserError, UnicodeDecodeError, OSError) as exc:
        raise StreamFatalError(f"unable to read CSV: {exc}") from exc

    with reader:
        try:
            for chunk in reader:
                chunk = chunk.rename(columns=lambda column: str(column).strip())
                yield from chunk.to_dict(orient="records")
        except EmptyDataError:
            return
        except (ParserError, UnicodeDecodeError) as exc:
            raise StreamFatalError(f"malformed CSV: {exc}") from exc


def iter_ndjson_lines(path: Path) -> Iterator[str]:
    """Yield the non-blank lines of an NDJSON file; decoding is per record."""

    try:
        with path.open("r", encoding="utf-8-sig") as fp:
            for line in fp:
                text = line.strip()
                if text:
                    yield text
    except (UnicodeDecodeError, OSError) as exc:
        raise StreamFatalError(f"unable to read NDJSON: {exc}") from exc


def load_json_array(path: Path) -> list[Any]:
    try:
        with path.open("r", encoding="utf-8-sig") as fp:
            data = json.load(fp)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        raise StreamFatalError(f"invalid JSON document: {exc}") from exc
    if not isinstance(data, list):
        raise StreamFatalError("JSON root must be an array")
    return data

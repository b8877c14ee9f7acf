"""Input format detection for uploaded persona datasets.

The detector classifies a file into one of the encodings the default parser
understands:

* a JSON document whose root is an array → ``json_array``
* one JSON object per line (NDJSON) → ``ndjson``
* delimited text with a header row → ``csv``

An unambiguous extension wins; otherwise the first non-whitespace character
of the file decides.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

JSON_SUFFIXES = {".json"}
NDJSON_SUFFIXES = {".ndjson", ".jsonl"}
SNIFF_BYTES = 1024


@dataclass
class DetectedFormat:
    encoding: str
    by_extension: bool = False


def _first_char(path: Path, limit: int = SNIFF_BYTES) -> str:
    with path.open("rb") as fp:
        head = fp.read(limit)
    text = head.decode("utf-8", errors="ignore").lstrip("﻿").lstrip()
    return text[:1]


def detect_json_shape(path: Path) -> str:
    """Tell a JSON array document from newline-delimited JSON."""

    return "json_array" if _first_char(path) == "[" else "ndjson"


def detect(path: Path) -> DetectedFormat:
    suffix = path.suffix.lower()
    if suffix in NDJSON_SUFFIXES:
        return DetectedFormat(encoding="ndjson", by_extension=True)
    if suffix in JSON_SUFFIXES:
        return DetectedFormat(encoding=detect_json_shape(path), by_extension=True)

    first = _first_char(path)
    if first == "[":
        return DetectedFormat(encoding="json_array")
    if first == "{":
        return DetectedFormat(encoding="ndjson")
    return DetectedFormat(encoding="csv")

from __future__ import annotations

import math
import re
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def clean_cell(value: Any) -> str:
    """Return ``value`` as trimmed text, mapping missing cells to ``""``."""

    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def collapse_whitespace(text: str) -> str:
    # \s matches the ideographic space (U+3000) as well
    return _WHITESPACE.sub(" ", text).strip()


def clamp(text: str, limit: int) -> str:
    return text[:limit] if len(text) > limit else text

"""Tag name parsing and per-run tag resolution."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Iterable

from persona_import.core.text_normalize import clean_cell
from persona_import.domain import Tag

if TYPE_CHECKING:  # pragma: no cover
    from persona_import.infrastructure.personas import TagStore

logger = logging.getLogger(__name__)

_TAG_SEPARATORS = re.compile(r"[,;|]")


def _unique(names: Iterable[Any]) -> list[str]:
    seen: dict[str, None] = {}
    for name in names:
        text = clean_cell(name)
        if text:
            seen.setdefault(text, None)
    return list(seen)


def parse_tag_names(value: Any) -> list[str]:
    """Normalise a tags cell into an ordered list of distinct names.

    Accepts a native list, a JSON-encoded array string, or a string separated
    by commas, semicolons or pipes.
    """

    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return _unique(value)
    text = clean_cell(value)
    if not text:
        return []
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return _unique(parsed)
    return _unique(_TAG_SEPARATORS.split(text))


class TagResolver:
    """Looks tags up by name, creating missing ones, memoised for one run.

    The cache guarantees at most one ``create`` call per distinct name for the
    lifetime of the resolver. Races between concurrent runs are left to the
    store's own lookup-before-create.
    """

    def __init__(self, store: "TagStore") -> None:
        self._store = store
        self._cache: dict[str, Tag] = {}

    def resolve(self, name: str) -> Tag:
        tag = self._cache.get(name)
        if tag is None:
            tag = self._store.find_by_name(name)
            if tag is None:
                tag = self._store.create(name)
                logger.debug("created tag %r", name)
            self._cache[name] = tag
        return tag

    def resolve_all(self, names: Iterable[str]) -> list[Tag]:
        return [self.resolve(name) for name in _unique(names)]

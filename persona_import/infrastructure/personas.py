"""Persona and tag persistence."""
from __future__ import annotations

import threading
import uuid
from typing import Protocol, Sequence

from persona_import.core.errors import BatchPersistenceError
from persona_import.domain import PersonaRecord, Tag

PERSONA_NAME_MAX_LENGTH = 255
PERSONA_AVATAR_MAX_LENGTH = 500
TAG_NAME_MAX_LENGTH = 100


class PersonaStore(Protocol):
    """Batched persona writes; a call either stores the whole batch or raises."""

    def save(self, batch: Sequence[PersonaRecord]) -> list[str]: ...


class TagStore(Protocol):
    """Lookup and creation of named tags."""

    def find_by_name(self, name: str) -> Tag | None: ...

    def create(self, name: str) -> Tag: ...


class InMemoryTagStore:
    """Thread-safe tag table with unique names."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_name: dict[str, Tag] = {}

    def find_by_name(self, name: str) -> Tag | None:
        with self._lock:
            return self._by_name.get(name)

    def create(self, name: str) -> Tag:
        if not name or len(name) > TAG_NAME_MAX_LENGTH:
            raise ValueError(f"tag name must be 1-{TAG_NAME_MAX_LENGTH} characters: {name!r}")
        with self._lock:
            # lookup-before-create keeps names unique across concurrent runs
            existing = self._by_name.get(name)
            if existing is not None:
                return existing
            tag = Tag(id=str(uuid.uuid4()), name=name)
            self._by_name[name] = tag
            return tag

    def list_tags(self) -> list[Tag]:
        with self._lock:
            return sorted(self._by_name.values(), key=lambda tag: tag.name)

    def reset(self) -> None:
        with self._lock:
            self._by_name.clear()


class InMemoryPersonaStore:
    """Simple in-memory persona table keyed by id.

    Saving a persona whose id already exists overwrites it, which makes
    re-importing a dataset with stable identifiers idempotent.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, dict[str, object]] = {}

    def save(self, batch: Sequence[PersonaRecord]) -> list[str]:
        for persona in batch:
            if not persona.name or len(persona.name) > PERSONA_NAME_MAX_LENGTH:
                raise BatchPersistenceError(
                    f"persona name must be 1-{PERSONA_NAME_MAX_LENGTH} characters"
                )
            if persona.avatar and len(persona.avatar) > PERSONA_AVATAR_MAX_LENGTH:
                raise BatchPersistenceError(
                    f"persona avatar must be at most {PERSONA_AVATAR_MAX_LENGTH} characters"
                )

        saved: list[str] = []
        with self._lock:
            for persona in batch:
                persona_id = persona.id or str(uuid.uuid4())
                self._rows[persona_id] = {
                    "id": persona_id,
                    "name": persona.name,
                    "greeting": persona.greeting,
                    "description": persona.description,
                    "avatar": persona.avatar,
                    "tag_ids": persona.tag_ids,
                }
                saved.append(persona_id)
        return saved

    def get(self, persona_id: str) -> dict[str, object] | None:
        with self._lock:
            row = self._rows.get(persona_id)
            return dict(row) if row else None

    def list_personas(self) -> list[dict[str, object]]:
        with self._lock:
            return [dict(row) for row in self._rows.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def reset(self) -> None:
        with self._lock:
            self._rows.clear()

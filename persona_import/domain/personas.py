"""Persona and tag entities produced by the record transformers."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Tag:
    id: str
    name: str


@dataclass(slots=True)
class PersonaRecord:
    """Normalized persona awaiting persistence.

    ``id`` is only set when the source row carries a stable identifier; the
    store generates one otherwise. Tags are opaque handles, the persona/tag
    join is maintained by the store from :attr:`tag_ids`.
    """

    name: str
    greeting: str
    description: str
    avatar: str | None = None
    tags: list[Tag] = field(default_factory=list)
    id: str | None = None

    @property
    def tag_ids(self) -> list[str]:
        return [tag.id for tag in self.tags]

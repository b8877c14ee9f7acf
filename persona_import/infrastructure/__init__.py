"""Infrastructure layer exports."""

from .jobs import InMemoryJobRepository, JobRepository
from .personas import InMemoryPersonaStore, InMemoryTagStore, PersonaStore, TagStore

__all__ = [
    "InMemoryJobRepository",
    "InMemoryPersonaStore",
    "InMemoryTagStore",
    "JobRepository",
    "PersonaStore",
    "TagStore",
]

"""Domain layer definitions."""

from .imports import ImportProgress, JobState, JobStatus
from .personas import PersonaRecord, Tag

__all__ = [
    "ImportProgress",
    "JobState",
    "JobStatus",
    "PersonaRecord",
    "Tag",
]

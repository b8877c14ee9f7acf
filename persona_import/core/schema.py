from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, constr, field_validator
from pydantic.alias_generators import to_camel

from persona_import.core.tags import parse_tag_names
from persona_import.core.text_normalize import clean_cell
from persona_import.domain import JobState, JobStatus


class PersonaPayload(BaseModel):
    """Loosely-typed persona record accepted by the default parser."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "uuid"))
    name: constr(min_length=1)
    greeting: constr(min_length=1)
    description: constr(min_length=1)
    avatar: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("name", "greeting", "description", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        return clean_cell(value)

    @field_validator("id", "avatar", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return clean_cell(value) or None

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_names(cls, value: Any) -> list[str]:
        return parse_tag_names(value)


class CsvPersonaV1Row(BaseModel):
    """Row of the fixed-schema persona CSV. Every cell is trimmed text."""

    model_config = ConfigDict(extra="ignore")

    uuid: str = ""
    persona: str = ""
    cultural_background: str = ""
    skills_and_expertise_list: str = ""
    hobbies_and_interests_list: str = ""
    career_goals_and_ambitions: str = ""
    sex: str = ""
    age: str = ""
    marital_status: str = ""
    education_level: str = ""
    occupation: str = ""
    region: str = ""
    prefecture: str = ""
    country: str = ""
    professional_persona: str = ""
    sports_persona: str = ""
    arts_persona: str = ""
    travel_persona: str = ""
    culinary_persona: str = ""
    area: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _cell(cls, value: Any) -> str:
        return clean_cell(value)


class JobStatusModel(BaseModel):
    """Status payload exposed to pollers, serialised in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    status: JobStatus
    processed: int = 0
    inserted: int = 0
    failed: int = 0
    total: int | None = None
    error: str | None = None
    started_at: datetime
    updated_at: datetime
    parser: str
    batch_size: int

    @classmethod
    def from_state(cls, job: JobState) -> "JobStatusModel":
        return cls(**asdict(job))


class ImportAccepted(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str

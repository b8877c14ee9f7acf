"""Parser for the fixed-schema Japanese persona CSV (``csv_persona_v1``).

Each row describes one synthetic resident: a free-text biography
(``persona``), cultural background, career goals, demographic columns and two
quasi-JSON lists (skills, hobbies) written with single quotes. The row's
``uuid`` becomes the persona id so that re-importing the same file updates
personas instead of duplicating them.
"""

from __future__ import annotations

import ast
import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from persona_import.core.errors import RecordValidationError
from persona_import.core.ingest import ImportContext, ImportRun
from persona_import.core.schema import CsvPersonaV1Row
from persona_import.core.tags import TagResolver
from persona_import.core.text_normalize import clamp, clean_cell, collapse_whitespace
from persona_import.domain import ImportProgress, PersonaRecord
from persona_import.extractors.readers import count_data_lines, iter_csv_records

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

DEFAULT_VOCABULARY: dict[str, Any] = {
    "name": {
        "max_length": 40,
        "unknown": "Unknown",
        "sentence_markers": ["歳", "在住", "です", "。", "【", "】"],
    },
    "sex_labels": {"男": "Male", "男性": "Male", "女": "Female", "女性": "Female"},
    "age_groups": [
        {"below": 25, "label": "20s-early"},
        {"below": 35, "label": "20s-30s"},
        {"below": 45, "label": "30s-40s"},
        {"below": 55, "label": "40s-50s"},
        {"below": 65, "label": "50s-60s"},
    ],
    "senior_label": "Senior",
    "occupation_categories": {},
    "other_occupation": "Other Occupation",
    "list_tag_limit": 5,
}


def _load_vocabulary() -> dict[str, Any]:
    path = CONFIG_DIR / "csv_persona_v1.yaml"
    if not path.exists():
        return dict(DEFAULT_VOCABULARY)
    with path.open("r", encoding="utf-8") as fp:
        loaded = yaml.safe_load(fp) or {}
    return {**DEFAULT_VOCABULARY, **loaded}


VOCABULARY = _load_vocabulary()

_STRICT_NAME = re.compile(r"^([^\s、，。.]+?)\s+([^\s、，。.]+?)\s*(?:は|が)")
_TOPIC_NAME = re.compile(r"^(.*?)(?:は|が)(?:[、，。,．]|\s|$)")
_NAME_NOISE = re.compile(r"[\s、，。.]")
_LEADING_INT = re.compile(r"^\d+")
_QUOTED_ENTRY = re.compile(r"'((?:[^'\\]|\\.)*)'|\"((?:[^\"\\]|\\.)*)\"")

PROFILE_SECTIONS = [
    ("professional_persona", "仕事・専門の側面"),
    ("sports_persona", "スポーツ/身体活動"),
    ("arts_persona", "芸術/創作の側面"),
    ("travel_persona", "旅行スタイル"),
    ("culinary_persona", "料理・食文化"),
]


# ----------------------------------------------------------------------
# name & text helpers
# ----------------------------------------------------------------------
def _name_limit() -> int:
    return int(VOCABULARY["name"]["max_length"])


def is_reasonable_name(candidate: str) -> bool:
    if not candidate or len(candidate) > _name_limit():
        return False
    return not any(marker in candidate for marker in VOCABULARY["name"]["sentence_markers"])


def extract_name(biography: str) -> str:
    """Pull a display name out of the free-text biography.

    Tries, in order: two tokens followed by a topic marker (は/が), the text
    before the first topic marker, the first two tokens, the first token.
    """

    unknown = VOCABULARY["name"]["unknown"]
    normalized = collapse_whitespace(biography or "")
    if not normalized:
        return unknown

    match = _STRICT_NAME.match(normalized)
    if match:
        candidate = f"{match.group(1)} {match.group(2)}"
        if is_reasonable_name(candidate):
            return candidate

    match = _TOPIC_NAME.match(normalized)
    if match and match.group(1):
        candidate = collapse_whitespace(_NAME_NOISE.sub(" ", match.group(1)))
        if is_reasonable_name(candidate):
            return candidate

    tokens = normalized.split(" ")
    candidates = []
    if len(tokens) >= 2:
        candidates.append(clamp(f"{tokens[0]} {tokens[1]}", _name_limit()))
    candidates.append(clamp(tokens[0], _name_limit()))
    for candidate in candidates:
        if is_reasonable_name(candidate):
            return candidate
    return unknown


def parse_list_field(value: str) -> list[str]:
    """Parse a ``['a', 'b']`` style cell.

    Entries that cannot be recovered are dropped; a non-empty cell that is not
    a bracketed list at all is rejected.
    """

    text = clean_cell(value)
    if not text:
        return []
    if not (text.startswith("[") and text.endswith("]")):
        raise RecordValidationError(f"not a list: {clamp(text, 40)!r}")

    for loader in (json.loads, ast.literal_eval):
        try:
            parsed = loader(text)
        except (ValueError, SyntaxError):
            continue
        if isinstance(parsed, (list, tuple)):
            items = [clean_cell(item) for item in parsed if isinstance(item, (str, int, float))]
            return [item for item in items if item]

    entries = [single or double for single, double in _QUOTED_ENTRY.findall(text)]
    return [entry.strip() for entry in entries if entry.strip()]


def age_group(age: str) -> str | None:
    match = _LEADING_INT.match(clean_cell(age))
    if not match:
        return None
    years = int(match.group(0))
    for group in VOCABULARY["age_groups"]:
        if years < int(group["below"]):
            return str(group["label"])
    return str(VOCABULARY["senior_label"])


def categorize_occupation(occupation: str) -> str:
    for keyword, category in VOCABULARY["occupation_categories"].items():
        if keyword in occupation:
            return str(category)
    return str(VOCABULARY["other_occupation"])


def build_greeting(row: CsvPersonaV1Row, name: str) -> str:
    age_part = f"{row.age}歳の" if row.age else ""
    location_part = f"{row.prefecture}在住の" if row.prefecture else ""
    return f"{clamp(name, _name_limit())}は{age_part}{location_part}{row.occupation}です。"


def _section(title: str, body: str) -> str:
    body = body.strip()
    return f"【{title}】\n{body}" if body else ""


def _bullets(title: str, items: list[str]) -> str:
    lines = [f"・{item}" for item in items if item]
    return _section(title, "\n".join(lines))


def build_description(row: CsvPersonaV1Row, skills: list[str], hobbies: list[str]) -> str:
    sections = [_section("人物像", row.persona)]
    sections.extend(_section(title, getattr(row, column)) for column, title in PROFILE_SECTIONS)
    sections.append(_section("文化背景", row.cultural_background))

    profile = []
    if row.sex:
        profile.append(f"性別: {row.sex}")
    if row.age:
        profile.append(f"年齢: {row.age}")
    if row.marital_status:
        profile.append(f"婚姻: {row.marital_status}")
    if row.education_level:
        profile.append(f"学歴: {row.education_level}")
    if row.occupation:
        profile.append(f"職業: {row.occupation}")
    location = " / ".join(part for part in (row.country, row.region, row.area, row.prefecture) if part)
    if location:
        profile.append(f"地域: {location}")
    sections.append(_section("基本情報", "\n".join(profile)))

    sections.append(_bullets("スキル・専門性", skills))
    sections.append(_bullets("趣味・関心", hobbies))
    sections.append(_section("キャリア目標", row.career_goals_and_ambitions))
    return "\n\n".join(section for section in sections if section)


def collect_tag_names(row: CsvPersonaV1Row, skills: list[str], hobbies: list[str]) -> list[str]:
    names: list[str] = []
    sex = VOCABULARY["sex_labels"].get(row.sex)
    if sex:
        names.append(str(sex))
    group = age_group(row.age)
    if group:
        names.append(group)
    names.extend([row.marital_status, row.education_level, row.region, row.prefecture])
    if row.occupation:
        names.append(categorize_occupation(row.occupation))
    limit = int(VOCABULARY["list_tag_limit"])
    names.extend(skills[:limit])
    names.extend(hobbies[:limit])
    return [name for name in names if name]


def transform_row(raw: Any, tags: TagResolver) -> PersonaRecord:
    if not isinstance(raw, Mapping):
        raise RecordValidationError("row must be a mapping")
    try:
        row = CsvPersonaV1Row.model_validate(dict(raw))
    except ValidationError as exc:
        raise RecordValidationError(str(exc)) from exc

    skills = parse_list_field(row.skills_and_expertise_list)
    hobbies = parse_list_field(row.hobbies_and_interests_list)
    name = extract_name(row.persona)

    return PersonaRecord(
        id=row.uuid or None,
        name=name,
        greeting=build_greeting(row, name),
        description=build_description(row, skills, hobbies),
        tags=tags.resolve_all(collect_tag_names(row, skills, hobbies)),
    )


class CsvPersonaV1Parser:
    """Fixed-schema CSV parser registered under ``"csv_persona_v1"``."""

    def parse(self, file_path: Path, context: ImportContext) -> ImportProgress:
        path = Path(file_path)
        run = ImportRun(context, transform_row)
        run.announce_total(count_data_lines(path, header=True))
        return run.consume(iter_csv_records(path, context.effective_batch_size))

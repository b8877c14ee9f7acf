import csv
import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from persona_import.core.errors import StreamFatalError
from persona_import.core.ingest import ImportContext
from persona_import.extractors import detect
from persona_import.extractors.default_persona import DefaultPersonaParser
from persona_import.infrastructure import InMemoryPersonaStore, InMemoryTagStore


class RecordingPersonaStore(InMemoryPersonaStore):
    def __init__(self) -> None:
        super().__init__()
        self.batch_sizes: list[int] = []

    def save(self, batch):
        self.batch_sizes.append(len(batch))
        return super().save(batch)


class CountingTagStore(InMemoryTagStore):
    def __init__(self) -> None:
        super().__init__()
        self.created: list[str] = []

    def create(self, name):
        self.created.append(name)
        return super().create(name)


def _persona(index: int, **extra) -> dict:
    record = {
        "name": f"Persona {index}",
        "greeting": f"Hello from {index}",
        "description": f"Persona number {index}",
    }
    record.update(extra)
    return record


def _write_json(tmp_path: Path, filename: str, records: list) -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    return path


def _write_ndjson(tmp_path: Path, filename: str, lines: list[str]) -> Path:
    path = tmp_path / filename
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _write_csv(tmp_path: Path, filename: str, rows: list[dict]) -> Path:
    fieldnames: list[str] = []
    for row in rows:
        for key in row.keys():
            if key not in fieldnames:
                fieldnames.append(key)

    path = tmp_path / filename
    with path.open("w", encoding="utf-8", newline="") as fp:
        writer = csv.DictWriter(fp, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def _context(batch_size: int = 250, **kwargs) -> ImportContext:
    return ImportContext(
        persona_store=kwargs.pop("persona_store", RecordingPersonaStore()),
        tag_store=kwargs.pop("tag_store", InMemoryTagStore()),
        batch_size=batch_size,
        **kwargs,
    )


def test_json_array_imports_every_record(tmp_path):
    path = _write_json(tmp_path, "personas.json", [_persona(1), _persona(2), _persona(3)])
    context = _context()

    progress = DefaultPersonaParser().parse(path, context)

    assert (progress.processed, progress.inserted, progress.failed) == (3, 3, 0)
    assert progress.total == 3
    assert context.persona_store.count() == 3


def test_csv_missing_required_column_fails_every_row(tmp_path):
    rows = [{"name": f"P{index}", "greeting": "hi"} for index in range(4)]
    path = _write_csv(tmp_path, "personas.csv", rows)
    context = _context()

    progress = DefaultPersonaParser().parse(path, context)

    assert (progress.processed, progress.inserted, progress.failed) == (4, 0, 4)
    assert context.persona_store.count() == 0


def test_csv_tags_accept_separator_strings(tmp_path):
    rows = [
        _persona(1, tags="quiet; curious|quiet"),
        _persona(2, tags='["curious", "brave"]'),
        _persona(3, tags=""),
    ]
    path = _write_csv(tmp_path, "personas.csv", rows)
    tags = InMemoryTagStore()
    context = _context(tag_store=tags)

    progress = DefaultPersonaParser().parse(path, context)

    assert progress.inserted == 3
    assert progress.total == 3
    assert [tag.name for tag in tags.list_tags()] == ["brave", "curious", "quiet"]
    personas = {row["name"]: row for row in context.persona_store.list_personas()}
    assert len(personas["Persona 1"]["tag_ids"]) == 2
    assert personas["Persona 3"]["tag_ids"] == []


def test_ndjson_bad_lines_count_as_failed_records(tmp_path):
    lines = [
        json.dumps(_persona(1, tags=["a"])),
        "",
        "{not json",
        json.dumps(_persona(2, avatar="https://example.com/2.png")),
        json.dumps(["not", "an", "object"]),
    ]
    path = _write_ndjson(tmp_path, "personas.ndjson", lines)
    context = _context()

    progress = DefaultPersonaParser().parse(path, context)

    assert progress.total == 4
    assert (progress.processed, progress.inserted, progress.failed) == (4, 2, 2)
    avatars = {row["name"]: row["avatar"] for row in context.persona_store.list_personas()}
    assert avatars == {"Persona 1": None, "Persona 2": "https://example.com/2.png"}


def test_blank_required_text_is_rejected(tmp_path):
    path = _write_json(
        tmp_path,
        "personas.json",
        [_persona(1, greeting="   "), _persona(2), {"name": "only a name"}, "not a record"],
    )

    progress = DefaultPersonaParser().parse(path, _context())

    assert (progress.processed, progress.inserted, progress.failed) == (4, 1, 3)


def test_records_with_ids_are_upserted(tmp_path):
    path = _write_json(tmp_path, "personas.json", [_persona(1, id="p-1"), _persona(2, uuid="p-2")])
    store = RecordingPersonaStore()

    DefaultPersonaParser().parse(path, _context(persona_store=store))
    DefaultPersonaParser().parse(path, _context(persona_store=store))

    assert store.count() == 2
    assert store.get("p-1")["name"] == "Persona 1"
    assert store.get("p-2")["name"] == "Persona 2"


def test_batches_are_flushed_at_batch_size(tmp_path):
    path = _write_json(tmp_path, "personas.json", [_persona(index) for index in range(5)])
    store = RecordingPersonaStore()

    progress = DefaultPersonaParser().parse(path, _context(batch_size=2, persona_store=store))

    assert store.batch_sizes == [2, 2, 1]
    assert progress.inserted == 5


def test_csv_batches_never_exceed_batch_size(tmp_path):
    path = _write_csv(tmp_path, "personas.csv", [_persona(index) for index in range(23)])
    store = RecordingPersonaStore()

    progress = DefaultPersonaParser().parse(path, _context(batch_size=4, persona_store=store))

    assert max(store.batch_sizes) <= 4
    assert sum(store.batch_sizes) == 23
    assert progress.processed == progress.inserted + progress.failed == 23


def test_shared_tags_are_created_once(tmp_path):
    records = [_persona(index, tags=["shared", f"own-{index % 2}"]) for index in range(6)]
    path = _write_json(tmp_path, "personas.json", records)
    tags = CountingTagStore()

    DefaultPersonaParser().parse(path, _context(batch_size=2, tag_store=tags))

    assert tags.created.count("shared") == 1
    assert sorted(tags.created) == ["own-0", "own-1", "shared"]


def test_tags_existing_before_the_run_are_reused(tmp_path):
    tags = CountingTagStore()
    existing = tags.create("veteran")
    tags.created.clear()
    path = _write_json(tmp_path, "personas.json", [_persona(1, tags=["veteran"])])
    context = _context(tag_store=tags)

    DefaultPersonaParser().parse(path, context)

    assert tags.created == []
    assert context.persona_store.list_personas()[0]["tag_ids"] == [existing.id]


def test_malformed_json_document_is_fatal(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('[{"name": "a", ', encoding="utf-8")

    with pytest.raises(StreamFatalError):
        DefaultPersonaParser().parse(path, _context())


def test_empty_csv_imports_nothing(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    progress = DefaultPersonaParser().parse(path, _context())

    assert (progress.processed, progress.inserted, progress.failed) == (0, 0, 0)


@pytest.mark.parametrize(
    ("filename", "content", "expected"),
    [
        ("data.json", '  [{"name": "a"}]', "json_array"),
        ("data.json", '{"name": "a"}\n{"name": "b"}\n', "ndjson"),
        ("data.jsonl", "[1]\n", "ndjson"),
        ("data.txt", "\ufeff\n  [ ]", "json_array"),
        ("upload", '{"name": "a"}\n', "ndjson"),
        ("upload", "name,greeting,description\n", "csv"),
    ],
)
def test_detect_sniffs_format(tmp_path, filename, content, expected):
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")

    assert detect.detect(path).encoding == expected


def test_sniffed_json_array_without_extension(tmp_path):
    path = tmp_path / "upload.dat"
    path.write_text(json.dumps([_persona(1), _persona(2)]), encoding="utf-8")

    progress = DefaultPersonaParser().parse(path, _context())

    assert progress.inserted == 2


def test_oversized_avatar_fails_its_batch(tmp_path):
    records = [_persona(1, avatar="https://example.com/" + "a" * 500), _persona(2), _persona(3)]
    path = _write_json(tmp_path, "personas.json", records)
    store = RecordingPersonaStore()

    progress = DefaultPersonaParser().parse(path, _context(batch_size=2, persona_store=store))

    assert store.batch_sizes == [2, 1]
    assert (progress.processed, progress.inserted, progress.failed) == (3, 1, 2)
    assert [row["name"] for row in store.list_personas()] == ["Persona 3"]

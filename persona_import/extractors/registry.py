from __future__ import annotations

from persona_import.core.ingest import DatasetParser
from persona_import.extractors.csv_persona_v1 import CsvPersonaV1Parser
from persona_import.extractors.default_persona import DefaultPersonaParser

DEFAULT_PARSER_KEY = "default"


def default_parsers() -> dict[str, DatasetParser]:
    """Parsers available to every import service, keyed by parser key."""

    return {
        DEFAULT_PARSER_KEY: DefaultPersonaParser(),
        "csv_persona_v1": CsvPersonaV1Parser(),
    }

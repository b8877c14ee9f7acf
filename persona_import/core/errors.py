from __future__ import annotations


class DatasetImportError(Exception):
    """Base class for failures raised by the import pipeline."""


class UnknownParserError(DatasetImportError):
    """Raised synchronously when a caller asks for an unregistered parser."""

    def __init__(self, parser_key: str, available: list[str] | None = None) -> None:
        self.parser_key = parser_key
        self.available = sorted(available or [])
        message = f"Unknown parser: {parser_key}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class RecordValidationError(DatasetImportError):
    """A single record failed required-field or parse checks."""


class BatchPersistenceError(DatasetImportError):
    """The persona store rejected a batch."""


class StreamFatalError(DatasetImportError):
    """The input stream cannot be read any further."""


class CancellationError(DatasetImportError):
    """The cooperative cancellation signal was observed."""

    def __init__(self, message: str = "Import cancelled") -> None:
        super().__init__(message)

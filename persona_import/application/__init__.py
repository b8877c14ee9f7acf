"""Application services."""

from .imports import DatasetImportService, get_import_service, reset_import_state

__all__ = [
    "DatasetImportService",
    "get_import_service",
    "reset_import_state",
]

"""Export and import pipelines."""

from .export_service import ExportResult, ExportService
from .import_service import ImportResult, ImportService

__all__ = ["ExportResult", "ExportService", "ImportResult", "ImportService"]

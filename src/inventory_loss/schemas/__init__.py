"""Flat-file formats shared by the export and import pipelines."""

from .export_line import (
    FIELD_COUNT,
    LINE_DELIMITER,
    LineFormat,
    ParsedLine,
    parse_line,
    render_file,
    render_line,
)
from .file_naming import FileNaming, ParsedFileName

__all__ = [
    "FIELD_COUNT",
    "LINE_DELIMITER",
    "FileNaming",
    "LineFormat",
    "ParsedFileName",
    "ParsedLine",
    "parse_line",
    "render_file",
    "render_line",
]

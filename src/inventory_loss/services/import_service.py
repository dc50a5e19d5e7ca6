"""Import of pipe-delimited export files.

Each non-empty line becomes one entry. Lines are processed independently: a
malformed line is recorded with its physical line number and the batch goes
on. Imported entries are created already synchronized, so they are never
exported again. A line whose product code is not in the catalog adds a
placeholder product named after the line (or the not-registered marker).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import FormatError, LossLedgerError, NotFoundError
from ..schemas.export_line import parse_line
from ..store.records import MAX_NOTES_LENGTH, NewEntry

if TYPE_CHECKING:
    from ..config import ImportConfig
    from ..repository import EntryRepository
    from ..schemas.file_naming import FileNaming
    from ..store.records import Reason

logger = logging.getLogger(__name__)


@dataclass
class LineFailure:
    """A line that could not be imported."""

    line_number: int
    line: str
    error: str


@dataclass
class ImportResult:
    """Result of importing one file."""

    file_name: str
    reason_id: str
    total_lines: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[LineFailure] = field(default_factory=list)
    entry_ids: list[int] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.failed == 0

    def summary(self, max_errors: int = 5) -> str:
        """One consolidated message for the whole file."""
        lines = [
            f"File: {self.file_name}",
            f"Total lines: {self.total_lines}",
            f"Imported: {self.succeeded}",
            f"Failures: {self.failed}",
        ]
        if self.errors:
            lines.append("")
            lines.append("Errors:")
            for failure in self.errors[:max_errors]:
                lines.append(f"- line {failure.line_number}: {failure.error}: {failure.line}")
            if len(self.errors) > max_errors:
                lines.append(f"...and {len(self.errors) - max_errors} more errors")
        return "\n".join(lines)


class ImportService:
    """Materializes entries from an export file.

    Usage:
        service = ImportService(EntryRepository(store), config.import_, config.export.naming)
        result = service.import_file(Path("motivo01_20261019.txt"))
    """

    def __init__(
        self,
        repository: EntryRepository,
        config: ImportConfig,
        naming: FileNaming,
    ) -> None:
        """Initialize the import service.

        Args:
            repository: Entry repository.
            config: Import settings.
            naming: File naming convention, used to infer the reason from a file name.
        """
        self.repository = repository
        self.config = config
        self.naming = naming

    def resolve_reason(self, path: Path, reason_id: str | None = None) -> Reason:
        """Pick the reason for every entry of ``path``.

        Order: explicit ``reason_id``, the reason encoded in the file name,
        then ``import.default_reason_id``.

        Raises:
            NotFoundError: The chosen reason does not exist.
        """
        if reason_id is not None:
            reason = self.repository.find_reason(reason_id)
            if reason is None:
                raise NotFoundError(f"Reason {reason_id!r} not found")
            return reason

        parsed = self.naming.parse(path.name)
        if parsed is not None:
            reason = self.repository.find_reason_by_code(parsed.reason_code)
            if reason is not None:
                return reason
            logger.warning(
                f"File name {path.name} names unknown reason code {parsed.reason_code}, "
                "using the default reason"
            )

        reason = self.repository.find_reason(self.config.default_reason_id)
        if reason is None:
            raise NotFoundError(f"Default reason {self.config.default_reason_id!r} not found")
        return reason

    def read_lines(self, path: Path) -> list[tuple[int, str]]:
        """Non-empty lines of ``path`` with their 1-based physical line numbers.

        Raises:
            NotFoundError: ``path`` is not an existing regular file.
            FormatError: The file is undecodable or has no non-empty lines.
        """
        if not path.is_file():
            raise NotFoundError(f"File not found: {path}")

        try:
            content = path.read_text(encoding=self.config.encoding)
        except UnicodeDecodeError as e:
            raise FormatError(f"File is not valid {self.config.encoding} text: {e}") from e

        content = content.lstrip("\ufeff")
        lines = [
            (number, line)
            for number, line in enumerate(content.splitlines(), start=1)
            if line.strip()
        ]
        if not lines:
            raise FormatError("Empty file")
        return lines

    def import_file(self, path: Path | str, reason_id: str | None = None) -> ImportResult:
        """Import every line of ``path``.

        Raises:
            NotFoundError: Missing file or unknown reason.
            FormatError: Empty or undecodable file.
        """
        start_time = time.time()
        path = Path(path)
        lines = self.read_lines(path)
        reason = self.resolve_reason(path, reason_id)

        logger.info(f"Importing {len(lines)} lines from {path} as reason {reason.code}")
        result = ImportResult(file_name=path.name, reason_id=reason.id, total_lines=len(lines))
        notes = f"Imported from {path.name}"[:MAX_NOTES_LENGTH]

        for line_number, line in lines:
            try:
                parsed = parse_line(line, line_number)
                new_entry = NewEntry(
                    product_code=parsed.product_code,
                    reason_id=reason.id,
                    quantity=parsed.quantity,
                    unit_cost=parsed.unit_cost,
                    notes=notes,
                    product_name=parsed.product_name,
                )
                self.repository.validate(new_entry)
                self.repository.ensure_product(parsed.product_code, parsed.product_name)
                entry_id = self.repository.insert(
                    new_entry,
                    created_at=parsed.created_at,
                    synchronized=True,
                )
                result.succeeded += 1
                result.entry_ids.append(entry_id)
            except LossLedgerError as e:
                logger.warning(f"Line {line_number} rejected: {e}")
                result.failed += 1
                result.errors.append(LineFailure(line_number, line, str(e)))
            except Exception as e:
                logger.exception(f"Line {line_number} failed")
                result.failed += 1
                result.errors.append(LineFailure(line_number, line, str(e)))

        try:
            self.repository.record_import(
                path.name, result.total_lines, result.succeeded, result.failed
            )
        except LossLedgerError as store_error:
            logger.error(f"Failed to record import run: {store_error}")

        result.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Import complete: {result.succeeded} imported, {result.failed} failed ({path.name})"
        )
        return result

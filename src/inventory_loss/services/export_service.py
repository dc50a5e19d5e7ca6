"""Per-reason export of unsynchronized entries.

For every active reason the service:
- selects the reason's entries that have not been exported yet
- renders them to one flat file per reason and day
- writes the file atomically (temp file + fsync + rename)
- flags exactly the written entries as synchronized, only after the write

A failure while exporting one reason is logged and recorded in the result;
the remaining reasons are still processed. Failing to enumerate reasons
aborts the run.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import COLLISION_APPEND
from ..errors import ExportPermissionError, NotFoundError
from ..schemas.export_line import render_file

if TYPE_CHECKING:
    from ..config import ExportConfig
    from ..repository import EntryRepository
    from ..store.records import Reason

logger = logging.getLogger(__name__)


@dataclass
class ExportedFile:
    """A file written by an export run."""

    reason: str  # reason code
    file_name: str
    file_path: Path
    entries_count: int


@dataclass
class ExportFailure:
    """A reason whose export failed."""

    reason: str  # reason code
    error: str


@dataclass
class ExportResult:
    """Result of an export run."""

    total_reasons: int = 0
    successful_exports: int = 0
    failed_exports: int = 0
    exported_files: list[ExportedFile] = field(default_factory=list)
    errors: list[ExportFailure] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        """Return True if no reason failed."""
        return self.failed_exports == 0

    @property
    def nothing_pending(self) -> bool:
        return self.successful_exports == 0 and self.failed_exports == 0

    @property
    def entries_exported(self) -> int:
        return sum(f.entries_count for f in self.exported_files)

    def summary(self, max_errors: int = 5) -> str:
        """One consolidated message for the whole run."""
        if self.nothing_pending:
            return "No pending entries to export."

        lines = [
            f"Reasons processed: {self.total_reasons}",
            f"Successful exports: {self.successful_exports}",
        ]
        if self.failed_exports:
            lines.append(f"Failures: {self.failed_exports}")

        if self.exported_files:
            lines.append("")
            lines.append("Files written:")
            for exported in self.exported_files:
                lines.append(f"- {exported.file_name} ({exported.entries_count} entries)")

        if self.errors:
            lines.append("")
            lines.append("Errors:")
            for failure in self.errors[:max_errors]:
                lines.append(f"- Reason {failure.reason}: {failure.error}")
            if len(self.errors) > max_errors:
                lines.append(f"...and {len(self.errors) - max_errors} more errors")

        return "\n".join(lines)


@dataclass
class ExportedFileInfo:
    """An export file found on disk."""

    reason_folder: str
    file_name: str
    file_path: Path
    size: int
    modified_at: datetime


def write_atomic(path: Path, content: str, append: bool = False, encoding: str = "utf-8") -> None:
    """Write ``content`` to ``path`` so readers see either the old or the new file.

    With ``append`` the existing content is kept in front of the new lines.

    Raises:
        ExportPermissionError: The directory or file is not writable.
        OSError: Any other write failure.
    """
    tmp_path = None
    try:
        if append and path.exists():
            existing = path.read_text(encoding=encoding)
            if existing and not existing.endswith("\n"):
                existing += "\n"
            content = existing + content

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except PermissionError as e:
        raise ExportPermissionError(str(path), e.strerror) from e
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


class ExportService:
    """Exports unsynchronized entries to one file per reason.

    Usage:
        service = ExportService(EntryRepository(store), config.export)
        result = service.export_all()
        print(result.summary())
    """

    def __init__(
        self,
        repository: EntryRepository,
        config: ExportConfig,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the export service.

        Args:
            repository: Entry repository.
            config: Export settings (location, naming, line format).
            clock: Source of the current local time, used for file dates.
        """
        self.repository = repository
        self.config = config
        self.naming = config.naming
        self.clock = clock

    def export_all(self) -> ExportResult:
        """Run the export for every active reason.

        Raises:
            NotFoundError: No active reasons exist.
            PersistenceError: Reasons could not be read.
        """
        start_time = time.time()
        reasons = self.repository.list_reasons()
        if not reasons:
            raise NotFoundError("No reasons found in the database")

        logger.info(f"Starting export for {len(reasons)} reasons")
        today = self.clock().date()
        result = ExportResult(total_reasons=len(reasons))

        for reason in reasons:
            try:
                exported = self.export_reason(reason, today)
                if exported:
                    result.successful_exports += 1
                    result.exported_files.append(exported)
            except Exception as e:
                logger.exception(f"Export failed for reason {reason.code}")
                result.failed_exports += 1
                result.errors.append(ExportFailure(reason=reason.code, error=str(e)))

        result.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Export completed: %d files, %d entries, %d failures",
            len(result.exported_files),
            result.entries_exported,
            result.failed_exports,
        )
        return result

    def reason_directory(self, reason_code: str) -> Path:
        return self.config.root / self.naming.folder_name(reason_code)

    def export_reason(self, reason: Reason, today: date | None = None) -> ExportedFile | None:
        """Export one reason. Returns None when it has nothing pending."""
        entries = self.repository.find_unsynchronized_by_reason(reason.id)
        if not entries:
            logger.debug(f"No pending entries for reason {reason.code}")
            return None

        logger.info(f"Exporting {len(entries)} entries for reason {reason.code}")

        directory = self.reason_directory(reason.code)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise ExportPermissionError(str(directory), e.strerror) from e

        file_name = self.naming.build(reason.code, today or self.clock().date())
        file_path = directory / file_name
        content = render_file(entries, self.config.line_format)

        write_atomic(
            file_path,
            content,
            append=self.config.on_collision == COLLISION_APPEND,
        )
        logger.info(f"Wrote {file_path}")

        # Only after the file is durably in place
        changed = self.repository.mark_synchronized([e.id for e in entries])
        if changed != len(entries):
            logger.warning(
                f"Reason {reason.code}: {len(entries)} entries written, {changed} flags changed"
            )

        return ExportedFile(
            reason=reason.code,
            file_name=file_name,
            file_path=file_path,
            entries_count=len(entries),
        )

    def list_exported_files(self) -> list[ExportedFileInfo]:
        """Export files under the export root, newest first."""
        root = self.config.root
        if not root.is_dir():
            return []

        files = []
        for folder in sorted(root.iterdir()):
            if not folder.is_dir():
                continue
            for path in folder.iterdir():
                if not path.is_file() or not self.naming.matches(path.name):
                    continue
                stat = path.stat()
                files.append(
                    ExportedFileInfo(
                        reason_folder=folder.name,
                        file_name=path.name,
                        file_path=path,
                        size=stat.st_size,
                        modified_at=datetime.fromtimestamp(stat.st_mtime),
                    )
                )

        files.sort(key=lambda f: (f.modified_at, f.file_name), reverse=True)
        return files

"""
Export file naming.

Format: {prefix}{reason code zero-padded}_{YYYYMMDD}{extension}
E.g. motivo01_20261019.txt, stored under {base}/{subdir}/motivo01/

The writer builds names with ``build`` and the importer recovers the reason
code with ``parse``; both go through the same ``FileNaming`` instance so the
two sides cannot drift apart.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class ParsedFileName:
    """Components recovered from an export file name."""

    reason_code: str
    day: date


@dataclass(frozen=True)
class FileNaming:
    """Naming convention for per-reason export files."""

    prefix: str = "motivo"
    extension: str = ".txt"
    code_width: int = 2

    def padded_code(self, reason_code: str) -> str:
        return reason_code.strip().zfill(self.code_width)

    def folder_name(self, reason_code: str) -> str:
        """Per-reason directory name (same stem as the file prefix)."""
        return f"{self.prefix}{self.padded_code(reason_code)}"

    def build(self, reason_code: str, day: date | datetime) -> str:
        if isinstance(day, datetime):
            day = day.date()
        return f"{self.folder_name(reason_code)}_{day:%Y%m%d}{self.extension}"

    def _pattern(self) -> re.Pattern[str]:
        return re.compile(
            rf"^{re.escape(self.prefix)}(?P<code>[0-9A-Za-z]+)_(?P<day>\d{{8}}){re.escape(self.extension)}$"
        )

    def parse(self, file_name: str) -> ParsedFileName | None:
        """Recover reason code and date, or None if the name does not follow the convention."""
        match = self._pattern().match(file_name)
        if not match:
            return None
        try:
            day = datetime.strptime(match.group("day"), "%Y%m%d").date()
        except ValueError:
            return None
        return ParsedFileName(reason_code=match.group("code"), day=day)

    def matches(self, file_name: str) -> bool:
        return self.parse(file_name) is not None

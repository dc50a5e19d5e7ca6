"""
Configuration management.

All configuration keys and their defaults are defined here; no other module
should invent config keys.

Environment variables override the YAML file:
- LOSS_DB_PATH
- LOSS_EXPORT_DIR
- LOSS_EXPORT_LINE_FORMAT (pipe / inventory)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .schemas.export_line import LineFormat
from .schemas.file_naming import FileNaming


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


COLLISION_APPEND = "append"
COLLISION_OVERWRITE = "overwrite"


@dataclass
class ExportConfig:
    """Export pipeline settings.

    Files land in {base_dir}/{subdir}/{file_prefix}XX/{file_prefix}XX_YYYYMMDD{file_extension}.
    """

    base_dir: Path = field(default_factory=lambda: Path("data/inventario"))
    subdir: str = "motivos"
    file_prefix: str = "motivo"
    file_extension: str = ".txt"
    line_format: LineFormat = LineFormat.PIPE
    # Same-day re-export: append to the existing file or replace it
    on_collision: str = COLLISION_APPEND

    @property
    def naming(self) -> FileNaming:
        return FileNaming(prefix=self.file_prefix, extension=self.file_extension)

    @property
    def root(self) -> Path:
        """Directory holding the per-reason folders."""
        return self.base_dir / self.subdir if self.subdir else self.base_dir


@dataclass
class ImportConfig:
    """Import pipeline settings."""

    # Reason used when neither the caller nor the file name names one
    default_reason_id: str = "1"
    encoding: str = "utf-8"


@dataclass
class ReportConfig:
    """Consolidated summary settings."""

    # Error details shown in a summary before "...and N more"
    max_errors: int = 5


@dataclass
class Config:
    """Application configuration."""

    state_db_path: Path = field(default_factory=lambda: Path("data/inventory_loss.db"))
    export: ExportConfig = field(default_factory=ExportConfig)
    import_: ImportConfig = field(default_factory=ImportConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not str(self.state_db_path):
            errors.append("state_db_path is required")
        if not self.export.file_prefix:
            errors.append("export.file_prefix is required")
        if not self.export.file_extension.startswith("."):
            errors.append("export.file_extension must start with '.'")
        if self.export.on_collision not in (COLLISION_APPEND, COLLISION_OVERWRITE):
            errors.append(
                f"export.on_collision must be '{COLLISION_APPEND}' or '{COLLISION_OVERWRITE}'"
            )
        if not self.import_.default_reason_id:
            errors.append("import.default_reason_id is required")
        if self.report.max_errors < 1:
            errors.append("report.max_errors must be >= 1")

        return errors


def _line_format(value: str) -> LineFormat:
    try:
        return LineFormat(str(value).lower())
    except ValueError:
        choices = ", ".join(f.value for f in LineFormat)
        raise ConfigValidationError(
            f"export.line_format must be one of: {choices} (got {value!r})"
        ) from None


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults; environment variables are applied on top.
    """
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    # Export config
    export_data = data.get("export", {}) or {}
    export = ExportConfig(
        base_dir=Path(
            os.environ.get("LOSS_EXPORT_DIR", export_data.get("base_dir", "data/inventario"))
        ).expanduser(),
        subdir=export_data.get("subdir", "motivos") or "",
        file_prefix=export_data.get("file_prefix", "motivo"),
        file_extension=export_data.get("file_extension", ".txt"),
        line_format=_line_format(
            os.environ.get("LOSS_EXPORT_LINE_FORMAT", export_data.get("line_format", "pipe"))
        ),
        on_collision=export_data.get("on_collision", COLLISION_APPEND),
    )

    # Import config
    import_data = data.get("import", {}) or {}
    import_ = ImportConfig(
        default_reason_id=str(import_data.get("default_reason_id", "1")),
        encoding=import_data.get("encoding", "utf-8"),
    )

    report_data = data.get("report", {}) or {}
    report = ReportConfig(max_errors=int(report_data.get("max_errors", 5)))

    state_db = os.environ.get("LOSS_DB_PATH", data.get("state_db_path", "data/inventory_loss.db"))

    return Config(
        state_db_path=Path(state_db).expanduser(),
        export=export,
        import_=import_,
        report=report,
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Inventory loss ledger configuration

# SQLite database holding products, reasons and loss entries
state_db_path: "data/inventory_loss.db"

export:
  base_dir: "data/inventario"     # Root of the export tree
  subdir: "motivos"               # Per-reason folders go under base_dir/subdir
  file_prefix: "motivo"           # motivo01/motivo01_YYYYMMDD.txt
  file_extension: ".txt"
  line_format: "pipe"             # pipe (importable) or inventory (legacy, write-only)
  on_collision: "append"          # Same-day re-export: append or overwrite

import:
  default_reason_id: "1"          # Used when the file name does not encode a reason
  encoding: "utf-8"

report:
  max_errors: 5                   # Error details listed per summary
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(default_config)

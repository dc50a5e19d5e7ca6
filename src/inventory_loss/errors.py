"""
Error hierarchy.

Batch pipelines catch these at the unit boundary (one reason on export, one
line on import) and record them in their result; anything raised outside a
batch loop propagates to the caller.
"""


class LossLedgerError(Exception):
    """Base class for all ledger errors."""

    pass


class PersistenceError(LossLedgerError):
    """The store is unreachable or a statement failed."""

    pass


class NotFoundError(LossLedgerError):
    """A file or record does not exist."""

    pass


class FormatError(LossLedgerError):
    """Malformed input line or empty file."""

    def __init__(self, message: str, line_number: int | None = None):
        self.message = message
        self.line_number = line_number
        super().__init__(message)


class ValidationError(LossLedgerError):
    """An entry payload breaks a data-model invariant."""

    pass


class ExportPermissionError(LossLedgerError, PermissionError):
    """The export destination is not writable."""

    def __init__(self, path: str, detail: str | None = None):
        self.path = path
        message = (
            f"Cannot write to {path}. Check that the export directory exists and is "
            "writable, or choose another location with export.base_dir / LOSS_EXPORT_DIR"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

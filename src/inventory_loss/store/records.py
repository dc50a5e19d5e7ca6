"""
Record types shared by every store implementation.

Timestamps are stored as UTC ISO-8601 strings with seconds precision and a
``Z`` suffix, so lexical order equals chronological order.
"""

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum

NOT_REGISTERED_NAME = "PRODUTO NÃO CADASTRADO"
MAX_NOTES_LENGTH = 500


def format_timestamp(value: datetime) -> str:
    """Normalize a datetime to the stored timestamp form (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; raises ValueError on bad input."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def range_bound(value: date | datetime | None, end: bool = False) -> str | None:
    """Turn a date range bound into a stored-timestamp string.

    Plain dates cover the whole day: a start bound begins at midnight and an
    end bound includes the last second of the day.
    """
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end else time.min)
    return format_timestamp(value.replace(microsecond=0))


class UnitType(str, Enum):
    """How a product is counted."""

    WEIGHT = "KG"
    COUNT = "UN"


@dataclass
class Product:
    """Catalog product, keyed by its business code."""

    code: str
    name: str
    unit_type: UnitType = UnitType.COUNT
    regular_price: float = 0.0
    club_price: float | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Product":
        """Create from database row."""
        return cls(
            code=row["code"],
            name=row["name"],
            unit_type=UnitType(row["unit_type"]),
            regular_price=row["regular_price"],
            club_price=row["club_price"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
        )


@dataclass
class Reason:
    """Standardized loss category."""

    id: str
    code: str
    description: str
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Reason":
        """Create from database row."""
        return cls(
            id=row["id"],
            code=row["code"],
            description=row["description"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class NewEntry:
    """Entry-creation request, as produced by the entry form or an import line."""

    product_code: str
    reason_id: str
    quantity: float
    unit_cost: float = 0.0
    notes: str | None = None
    product_name: str | None = None


@dataclass
class Entry:
    """Persisted loss entry."""

    id: int
    product_code: str
    product_name: str
    reason_id: str
    quantity: float
    unit_cost: float
    notes: str | None
    created_at: str
    is_synchronized: bool = False

    @property
    def total_cost(self) -> float:
        return self.quantity * self.unit_cost

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Entry":
        """Create from database row."""
        return cls(
            id=row["id"],
            product_code=row["product_code"],
            product_name=row["product_name"],
            reason_id=row["reason_id"],
            quantity=row["quantity"],
            unit_cost=row["unit_cost"] or 0.0,
            notes=row["notes"],
            created_at=row["created_at"],
            is_synchronized=bool(row["is_synchronized"]),
        )


@dataclass
class LossAggregate:
    """Summed loss value over a set of entries."""

    total_value: float = 0.0
    total_quantity: float = 0.0
    total_entries: int = 0


@dataclass
class ReasonLoss:
    """Loss aggregate for one reason."""

    reason_id: str
    reason_code: str
    description: str
    aggregate: LossAggregate


@dataclass
class ReasonUsage:
    """How many entries reference an active reason."""

    reason_id: str
    reason_code: str
    description: str
    usage_count: int


@dataclass
class ImportLogRecord:
    """One import run."""

    id: int
    file_name: str
    imported_at: str
    lines_total: int
    lines_inserted: int
    lines_failed: int

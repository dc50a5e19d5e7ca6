"""
Entry repository.

Typed query/mutation surface over an ``EntryStore``. Checks entry payloads
before they reach the store, snapshots the product name at entry time and
converts date-range bounds into stored-timestamp form.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from .errors import ValidationError
from .store.records import (
    MAX_NOTES_LENGTH,
    NOT_REGISTERED_NAME,
    Entry,
    ImportLogRecord,
    LossAggregate,
    NewEntry,
    Product,
    Reason,
    ReasonLoss,
    ReasonUsage,
    format_timestamp,
    range_bound,
    utc_now,
)

if TYPE_CHECKING:
    from .store import EntryStore

logger = logging.getLogger(__name__)

FORBIDDEN_CODE_CHARS = ("|", "\r", "\n")


class EntryRepository:
    """Loss entries and the catalog they reference.

    Usage:
        repo = EntryRepository(SQLiteStore(config.state_db_path))
        entry_id = repo.insert(NewEntry(product_code="123", reason_id="1", quantity=5))
    """

    def __init__(self, store: EntryStore) -> None:
        self.store = store

    def validate(self, entry: NewEntry) -> Reason:
        """Check the payload invariants. Returns the referenced reason."""
        if not entry.product_code or not entry.product_code.strip():
            raise ValidationError("product code is required")
        if any(ch in entry.product_code for ch in FORBIDDEN_CODE_CHARS):
            raise ValidationError(
                f"product code must not contain '|' or line breaks, got {entry.product_code!r}"
            )
        if entry.quantity is None or not (math.isfinite(entry.quantity) and entry.quantity > 0):
            raise ValidationError(f"quantity must be positive, got {entry.quantity}")
        cost = entry.unit_cost
        if cost is not None and not (math.isfinite(cost) and cost >= 0):
            raise ValidationError(f"unit cost must be zero or positive, got {cost}")
        if entry.notes and len(entry.notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"notes exceed {MAX_NOTES_LENGTH} characters")

        reason = self.store.get_reason(entry.reason_id)
        if reason is None:
            raise ValidationError(f"unknown reason id {entry.reason_id!r}")
        return reason

    def _snapshot_name(self, entry: NewEntry) -> str:
        if entry.product_name and entry.product_name.strip():
            return entry.product_name.strip()
        product = self.store.get_product(entry.product_code.strip())
        return product.name if product else NOT_REGISTERED_NAME

    def insert(
        self,
        entry: NewEntry,
        created_at: datetime | None = None,
        synchronized: bool = False,
    ) -> int:
        """Persist a new entry and return its id.

        Args:
            entry: Entry-creation payload.
            created_at: Entry time; defaults to now. Imports pass the original time.
            synchronized: Initial flag. Only imports create synchronized entries.

        Raises:
            ValidationError: The payload breaks an invariant.
            PersistenceError: The store failed.
        """
        self.validate(entry)
        entry_id = self.store.insert_entry(
            product_code=entry.product_code.strip(),
            product_name=self._snapshot_name(entry),
            reason_id=entry.reason_id,
            quantity=float(entry.quantity),
            unit_cost=float(entry.unit_cost or 0.0),
            notes=entry.notes or None,
            created_at=format_timestamp(created_at) if created_at else utc_now(),
            is_synchronized=synchronized,
        )
        logger.debug(f"Inserted entry {entry_id} ({entry.product_code} x {entry.quantity})")
        return entry_id

    def find_unsynchronized_by_reason(self, reason_id: str) -> list[Entry]:
        """Entries of ``reason_id`` not yet exported, oldest first."""
        return self.store.find_entries(reason_id=reason_id, synchronized=False)

    def mark_synchronized(self, entry_ids: Iterable[int]) -> int:
        """Flag entries as exported. Unknown or already-flagged ids are ignored."""
        ids = list(entry_ids)
        if not ids:
            return 0
        return self.store.mark_synchronized(ids)

    def aggregate_loss_value(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> LossAggregate:
        """Sum of quantity * unit cost over an inclusive date range."""
        return self.store.aggregate(range_bound(start), range_bound(end, end=True))

    def loss_by_reason(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> list[ReasonLoss]:
        return self.store.aggregate_by_reason(range_bound(start), range_bound(end, end=True))

    def find_entries(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        synchronized: bool | None = None,
    ) -> list[Entry]:
        return self.store.find_entries(
            synchronized=synchronized,
            start=range_bound(start),
            end=range_bound(end, end=True),
        )

    def pending_count(self) -> int:
        return self.store.count_entries(synchronized=False)

    def list_reasons(self) -> list[Reason]:
        return self.store.list_reasons(active_only=True)

    def find_product(self, code: str) -> Product | None:
        return self.store.get_product(code)

    def ensure_product(self, code: str, name: str | None = None) -> Product:
        """Return the live product ``code``, creating a placeholder if absent.

        The placeholder carries ``name`` (or the not-registered marker) and
        zero prices, so later catalog loads overwrite it.
        """
        code = code.strip()
        product = self.store.get_product(code)
        if product is not None:
            return product
        placeholder = Product(code=code, name=(name or "").strip() or NOT_REGISTERED_NAME)
        self.store.upsert_product(placeholder)
        logger.info(f"Created placeholder product {code} ({placeholder.name})")
        return self.store.get_product(code) or placeholder

    def delete_product(self, code: str) -> bool:
        """Soft-delete a catalog product. Entries keep their name snapshot."""
        return self.store.soft_delete_product(code.strip())

    def most_used_reasons(self, limit: int = 5) -> list[ReasonUsage]:
        return self.store.reason_usage(limit)

    def record_import(
        self, file_name: str, lines_total: int, lines_inserted: int, lines_failed: int
    ) -> int:
        return self.store.record_import(file_name, lines_total, lines_inserted, lines_failed)

    def list_imports(self, limit: int = 20) -> list[ImportLogRecord]:
        return self.store.list_imports(limit)

    def find_reason(self, reason_id: str) -> Reason | None:
        return self.store.get_reason(reason_id)

    def find_reason_by_code(self, code: str) -> Reason | None:
        """Exact code match, else a match ignoring zero padding ("1" finds "01")."""
        reason = self.store.get_reason_by_code(code)
        if reason is not None:
            return reason
        wanted = code.lstrip("0") or "0"
        for candidate in self.store.list_reasons(active_only=False):
            if (candidate.code.lstrip("0") or "0") == wanted:
                return candidate
        return None

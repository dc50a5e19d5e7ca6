"""
In-memory store implementation.

Same contract as ``SQLiteStore`` without any file on disk. Used by tests and
for dry runs; nothing survives the process.
"""

from collections.abc import Iterable
from dataclasses import replace

from .base import EntryStore
from .records import (
    Entry,
    ImportLogRecord,
    LossAggregate,
    Product,
    Reason,
    ReasonLoss,
    ReasonUsage,
    utc_now,
)
from .seeds import DEFAULT_REASONS, SEED_TIMESTAMP


class InMemoryStore(EntryStore):
    """Dictionary-backed store. Returned records are copies."""

    def __init__(self, seed: bool = True):
        self._products: dict[str, Product] = {}
        self._reasons: dict[str, Reason] = {}
        self._entries: dict[int, Entry] = {}
        self._imports: list[ImportLogRecord] = []
        self._next_entry_id = 1
        if seed:
            self.seed_reasons(DEFAULT_REASONS)

    # Catalog

    def get_product(self, code: str) -> Product | None:
        product = self._products.get(code)
        if product is None or product.deleted_at is not None:
            return None
        return replace(product)

    def upsert_product(self, product: Product) -> None:
        now = utc_now()
        existing = self._products.get(product.code)
        created_at = existing.created_at if existing else (product.created_at or now)
        self._products[product.code] = replace(product, created_at=created_at, updated_at=now)

    def soft_delete_product(self, code: str) -> bool:
        product = self._products.get(code)
        if product is None or product.deleted_at is not None:
            return False
        now = utc_now()
        product.deleted_at = now
        product.updated_at = now
        return True

    def search_products(self, term: str, limit: int = 10) -> list[Product]:
        needle = term.lower()
        matches = [
            p
            for p in self._products.values()
            if p.deleted_at is None and (needle in p.code.lower() or needle in p.name.lower())
        ]
        matches.sort(key=lambda p: p.name.lower())
        return [replace(p) for p in matches[:limit]]

    def list_reasons(self, active_only: bool = True) -> list[Reason]:
        reasons = [r for r in self._reasons.values() if r.is_active or not active_only]
        return [replace(r) for r in sorted(reasons, key=lambda r: r.code)]

    def get_reason(self, reason_id: str) -> Reason | None:
        reason = self._reasons.get(reason_id)
        return replace(reason) if reason else None

    def get_reason_by_code(self, code: str) -> Reason | None:
        for reason in self._reasons.values():
            if reason.code == code:
                return replace(reason)
        return None

    def seed_reasons(self, reasons: Iterable[Reason]) -> int:
        if self._reasons:
            return 0
        for reason in reasons:
            self._reasons[reason.id] = replace(
                reason,
                created_at=reason.created_at or SEED_TIMESTAMP,
                updated_at=reason.updated_at or SEED_TIMESTAMP,
            )
        return len(self._reasons)

    # Entries

    def insert_entry(
        self,
        product_code: str,
        product_name: str,
        reason_id: str,
        quantity: float,
        unit_cost: float,
        notes: str | None,
        created_at: str,
        is_synchronized: bool = False,
    ) -> int:
        entry_id = self._next_entry_id
        self._next_entry_id += 1
        self._entries[entry_id] = Entry(
            id=entry_id,
            product_code=product_code,
            product_name=product_name,
            reason_id=reason_id,
            quantity=quantity,
            unit_cost=unit_cost,
            notes=notes,
            created_at=created_at,
            is_synchronized=is_synchronized,
        )
        return entry_id

    def _select(
        self,
        reason_id: str | None = None,
        synchronized: bool | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Entry]:
        selected = []
        for entry in self._entries.values():
            if reason_id is not None and entry.reason_id != reason_id:
                continue
            if synchronized is not None and bool(entry.is_synchronized) != synchronized:
                continue
            if start is not None and entry.created_at < start:
                continue
            if end is not None and entry.created_at > end:
                continue
            selected.append(entry)
        selected.sort(key=lambda e: (e.created_at, e.id))
        return selected

    def find_entries(
        self,
        reason_id: str | None = None,
        synchronized: bool | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Entry]:
        return [replace(e) for e in self._select(reason_id, synchronized, start, end)]

    def mark_synchronized(self, entry_ids: Iterable[int]) -> int:
        changed = 0
        for entry_id in set(entry_ids):
            entry = self._entries.get(entry_id)
            if entry is not None and not entry.is_synchronized:
                entry.is_synchronized = True
                changed += 1
        return changed

    def count_entries(self, synchronized: bool | None = None) -> int:
        return len(self._select(synchronized=synchronized))

    @staticmethod
    def _sum(entries: list[Entry]) -> LossAggregate:
        return LossAggregate(
            total_value=sum(e.total_cost for e in entries),
            total_quantity=sum(e.quantity for e in entries),
            total_entries=len(entries),
        )

    def aggregate(self, start: str | None = None, end: str | None = None) -> LossAggregate:
        return self._sum(self._select(start=start, end=end))

    def aggregate_by_reason(
        self, start: str | None = None, end: str | None = None
    ) -> list[ReasonLoss]:
        grouped: dict[str, list[Entry]] = {}
        for entry in self._select(start=start, end=end):
            if entry.reason_id in self._reasons:
                grouped.setdefault(entry.reason_id, []).append(entry)

        result = []
        for reason_id, entries in grouped.items():
            reason = self._reasons[reason_id]
            result.append(
                ReasonLoss(
                    reason_id=reason.id,
                    reason_code=reason.code,
                    description=reason.description,
                    aggregate=self._sum(entries),
                )
            )
        result.sort(key=lambda r: (-r.aggregate.total_value, r.reason_code))
        return result

    def reason_usage(self, limit: int = 5) -> list[ReasonUsage]:
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            counts[entry.reason_id] = counts.get(entry.reason_id, 0) + 1

        usage = [
            ReasonUsage(
                reason_id=reason.id,
                reason_code=reason.code,
                description=reason.description,
                usage_count=counts.get(reason.id, 0),
            )
            for reason in self._reasons.values()
            if reason.is_active
        ]
        usage.sort(key=lambda u: (-u.usage_count, u.reason_code))
        return usage[:limit]

    # Import log

    def record_import(
        self,
        file_name: str,
        lines_total: int,
        lines_inserted: int,
        lines_failed: int,
    ) -> int:
        record = ImportLogRecord(
            id=len(self._imports) + 1,
            file_name=file_name,
            imported_at=utc_now(),
            lines_total=lines_total,
            lines_inserted=lines_inserted,
            lines_failed=lines_failed,
        )
        self._imports.append(record)
        return record.id

    def list_imports(self, limit: int = 20) -> list[ImportLogRecord]:
        ordered = sorted(self._imports, key=lambda r: (r.imported_at, r.id), reverse=True)
        return [replace(r) for r in ordered[:limit]]

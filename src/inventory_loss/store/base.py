"""
Store capability interface.

Every backend provides catalog lookups, entry insert/query, the bulk
synchronization-flag update and the import log. Services depend on this
interface only; the backend is chosen by whoever constructs them.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from .records import (
    Entry,
    ImportLogRecord,
    LossAggregate,
    Product,
    Reason,
    ReasonLoss,
    ReasonUsage,
)


class EntryStore(ABC):
    """Durable row storage for products, reasons and loss entries."""

    # Catalog

    @abstractmethod
    def get_product(self, code: str) -> Product | None:
        """Look up a live (not soft-deleted) product by code."""

    @abstractmethod
    def upsert_product(self, product: Product) -> None:
        """Insert a product or update the existing row with the same code."""

    @abstractmethod
    def soft_delete_product(self, code: str) -> bool:
        """Set ``deleted_at`` on a live product. Returns False if none was live."""

    @abstractmethod
    def search_products(self, term: str, limit: int = 10) -> list[Product]:
        """Products whose code or name contains ``term``, ordered by name."""

    @abstractmethod
    def list_reasons(self, active_only: bool = True) -> list[Reason]:
        """Reasons ordered by code."""

    @abstractmethod
    def get_reason(self, reason_id: str) -> Reason | None: ...

    @abstractmethod
    def get_reason_by_code(self, code: str) -> Reason | None: ...

    @abstractmethod
    def seed_reasons(self, reasons: Iterable[Reason]) -> int:
        """Insert ``reasons`` when the table is empty. Returns rows inserted."""

    # Entries

    @abstractmethod
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
        """Persist a new entry and return its id."""

    @abstractmethod
    def find_entries(
        self,
        reason_id: str | None = None,
        synchronized: bool | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Entry]:
        """Entries matching every given predicate, oldest first (ties by id).

        ``synchronized=False`` also matches rows whose flag is unset.
        ``start``/``end`` are inclusive stored-timestamp bounds.
        """

    @abstractmethod
    def mark_synchronized(self, entry_ids: Iterable[int]) -> int:
        """Set the flag on the given ids. Returns how many rows changed."""

    @abstractmethod
    def count_entries(self, synchronized: bool | None = None) -> int: ...

    @abstractmethod
    def aggregate(self, start: str | None = None, end: str | None = None) -> LossAggregate: ...

    @abstractmethod
    def aggregate_by_reason(
        self, start: str | None = None, end: str | None = None
    ) -> list[ReasonLoss]:
        """Per-reason aggregates for reasons with at least one entry, highest value first."""

    @abstractmethod
    def reason_usage(self, limit: int = 5) -> list[ReasonUsage]:
        """Active reasons by entry count, most used first (ties by code).

        Reasons without entries are included with a count of 0.
        """

    # Import log

    @abstractmethod
    def record_import(
        self,
        file_name: str,
        lines_total: int,
        lines_inserted: int,
        lines_failed: int,
    ) -> int: ...

    @abstractmethod
    def list_imports(self, limit: int = 20) -> list[ImportLogRecord]:
        """Most recent import runs first."""

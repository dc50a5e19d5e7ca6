"""
Entry store.

Persistent storage for:
- Products (catalog, keyed by code)
- Reasons (seeded once)
- Loss entries and their synchronization flag
- Import runs

``SQLiteStore`` is the production backend, ``InMemoryStore`` the ephemeral one.
"""

from .base import EntryStore
from .memory_store import InMemoryStore
from .records import (
    NOT_REGISTERED_NAME,
    Entry,
    ImportLogRecord,
    LossAggregate,
    NewEntry,
    Product,
    Reason,
    ReasonLoss,
    ReasonUsage,
    UnitType,
)
from .sqlite_store import SQLiteStore

__all__ = [
    "EntryStore",
    "InMemoryStore",
    "SQLiteStore",
    "Entry",
    "ImportLogRecord",
    "LossAggregate",
    "NewEntry",
    "Product",
    "Reason",
    "ReasonLoss",
    "ReasonUsage",
    "UnitType",
    "NOT_REGISTERED_NAME",
]

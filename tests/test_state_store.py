"""Tests for the entry stores and migrations."""

import sqlite3

import pytest

from fixtures import SAMPLE_PRODUCTS
from inventory_loss.errors import PersistenceError
from inventory_loss.store import (
    InMemoryStore,
    Product,
    Reason,
    SQLiteStore,
    UnitType,
)
from inventory_loss.store.migrations import MigrationRunner, get_all_migrations
from inventory_loss.store.seeds import DEFAULT_REASONS


class TestSQLiteStoreInit:
    """Tests for SQLite store creation."""

    def test_init_creates_db(self, temp_db):
        """Initializing creates database file."""
        SQLiteStore(temp_db)
        assert temp_db.exists()

    def test_init_creates_tables(self, temp_db):
        """All required tables are created."""
        store = SQLiteStore(temp_db)
        conn = store._get_connection()
        try:
            tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            table_names = {t[0] for t in tables}
        finally:
            conn.close()

        assert {"products", "reasons", "entries", "import_log", "migrations"} <= table_names

    def test_migrations_recorded(self, temp_db):
        """Every shipped migration is recorded as applied."""
        store = SQLiteStore(temp_db)
        latest = max(m.version for m in get_all_migrations())
        assert store.schema_version() == latest

    def test_reopen_does_not_reapply(self, temp_db):
        """Opening an existing database runs no migrations."""
        SQLiteStore(temp_db)
        conn = sqlite3.connect(temp_db)
        try:
            assert MigrationRunner(conn).run_pending() == []
        finally:
            conn.close()

    def test_reasons_seeded_once(self, temp_db):
        """Default reasons are inserted only into an empty table."""
        SQLiteStore(temp_db)
        store = SQLiteStore(temp_db)

        reasons = store.list_reasons()
        assert len(reasons) == len(DEFAULT_REASONS)
        assert [r.code for r in reasons] == [f"0{i}" for i in range(1, 9)]
        assert store.seed_reasons(DEFAULT_REASONS) == 0

    def test_unreachable_database(self, tmp_path):
        """A directory in place of the database file is a persistence failure."""
        db_dir = tmp_path / "state.db"
        db_dir.mkdir()
        with pytest.raises(PersistenceError):
            SQLiteStore(db_dir)


class TestLegacySchema:
    """Databases created before the cost and notes columns existed."""

    def _legacy_db(self, temp_db) -> None:
        SQLiteStore(temp_db, run_migrations=False, seed=False)
        conn = sqlite3.connect(temp_db)
        try:
            MigrationRunner(conn).migrate_to(2)
            conn.execute(
                "INSERT INTO entries (product_code, product_name, reason_id, quantity, created_at) "
                "VALUES ('123', 'Old', '1', 2, '2025-06-01T10:00:00Z')"
            )
            conn.commit()
        finally:
            conn.close()

    def test_columns_added(self, temp_db):
        """Old rows get the default cost, notes and flag."""
        self._legacy_db(temp_db)

        store = SQLiteStore(temp_db)

        entries = store.find_entries()
        assert len(entries) == 1
        assert entries[0].unit_cost == 0
        assert entries[0].notes is None
        assert entries[0].is_synchronized is False

    def test_existing_column_left_alone(self, temp_db):
        """Columns added by an older build are detected instead of re-added."""
        self._legacy_db(temp_db)
        conn = sqlite3.connect(temp_db)
        try:
            conn.execute("ALTER TABLE entries ADD COLUMN unit_cost REAL")
            conn.commit()
        finally:
            conn.close()

        store = SQLiteStore(temp_db)

        assert store.schema_version() == max(m.version for m in get_all_migrations())
        assert store.find_entries()[0].unit_cost == 0


class TestCatalog:
    """Catalog operations on both backends."""

    def test_upsert_and_get(self, store):
        """An inserted product is returned with all its fields."""
        store.upsert_product(SAMPLE_PRODUCTS[0])

        product = store.get_product("7891234567890")

        assert product is not None
        assert product.name == "Arroz 5kg"
        assert product.unit_type == UnitType.COUNT
        assert product.club_price == 22.99
        assert product.created_at is not None

    def test_upsert_updates(self, store):
        """Upserting an existing code replaces its fields."""
        store.upsert_product(SAMPLE_PRODUCTS[0])
        store.upsert_product(
            Product(code="7891234567890", name="Arroz 5kg Tipo 1", regular_price=27.0)
        )

        product = store.get_product("7891234567890")
        assert product.name == "Arroz 5kg Tipo 1"
        assert product.club_price is None

    def test_soft_deleted_hidden(self, store):
        """Products stored as deleted are never returned."""
        store.upsert_product(
            Product(code="999", name="Gone", deleted_at="2026-01-01T00:00:00Z")
        )
        assert store.get_product("999") is None
        assert store.search_products("Gone") == []

    def test_soft_delete_hides_product(self, store):
        """A soft-deleted product drops out of lookups and search."""
        store.upsert_product(SAMPLE_PRODUCTS[2])

        assert store.soft_delete_product("7891234567892") is True

        assert store.get_product("7891234567892") is None
        assert store.search_products("Tomate") == []

    def test_soft_delete_twice(self, store):
        """Only live products count as deleted."""
        store.upsert_product(SAMPLE_PRODUCTS[2])

        assert store.soft_delete_product("7891234567892") is True
        assert store.soft_delete_product("7891234567892") is False
        assert store.soft_delete_product("unknown") is False

    def test_upsert_revives_deleted(self, store):
        """Loading a deleted code again brings the product back."""
        store.upsert_product(SAMPLE_PRODUCTS[2])
        store.soft_delete_product("7891234567892")

        store.upsert_product(
            Product(code="7891234567892", name="Tomate Italiano", unit_type=UnitType.WEIGHT)
        )

        product = store.get_product("7891234567892")
        assert product is not None
        assert product.name == "Tomate Italiano"
        assert product.deleted_at is None

    def test_missing_product(self, store):
        assert store.get_product("nope") is None

    def test_search(self, store):
        """Search matches code or name, case-insensitively, up to the limit."""
        for product in SAMPLE_PRODUCTS:
            store.upsert_product(product)

        assert [p.name for p in store.search_products("tomat")] == ["Tomate"]
        assert len(store.search_products("789123456789")) == 3
        assert len(store.search_products("789", limit=2)) == 2

    def test_reason_lookups(self, store):
        """Reasons are found by id and by code."""
        assert store.get_reason("2").description == "Produto Danificado"
        assert store.get_reason_by_code("05").id == "5"
        assert store.get_reason("99") is None
        assert store.get_reason_by_code("99") is None

    def test_inactive_reasons_filtered(self):
        """Inactive reasons are listed only on request."""
        store = InMemoryStore(seed=False)
        store.seed_reasons(
            [
                Reason(id="1", code="01", description="A"),
                Reason(id="2", code="02", description="B", is_active=False),
            ]
        )
        assert [r.id for r in store.list_reasons()] == ["1"]
        assert [r.id for r in store.list_reasons(active_only=False)] == ["1", "2"]


def _insert(store, code="123", reason_id="1", quantity=1.0, cost=0.0, created_at="2026-10-01T10:00:00Z", synced=False):
    return store.insert_entry(
        product_code=code,
        product_name=f"Product {code}",
        reason_id=reason_id,
        quantity=quantity,
        unit_cost=cost,
        notes=None,
        created_at=created_at,
        is_synchronized=synced,
    )


class TestEntries:
    """Entry operations on both backends."""

    def test_insert_returns_increasing_ids(self, store):
        """Ids are positive and increasing."""
        first = _insert(store)
        second = _insert(store)
        assert first > 0
        assert second > first

    def test_find_orders_by_created_then_id(self, store):
        """Entries come oldest first, ties by id."""
        late = _insert(store, code="late", created_at="2026-10-02T10:00:00Z")
        early_a = _insert(store, code="a", created_at="2026-10-01T10:00:00Z")
        early_b = _insert(store, code="b", created_at="2026-10-01T10:00:00Z")

        ids = [e.id for e in store.find_entries()]
        assert ids == [early_a, early_b, late]

    def test_find_filters(self, store):
        """Reason and flag filters combine."""
        _insert(store, reason_id="1")
        _insert(store, reason_id="2")
        _insert(store, reason_id="1", synced=True)

        assert len(store.find_entries(reason_id="1")) == 2
        assert len(store.find_entries(reason_id="1", synchronized=False)) == 1
        assert len(store.find_entries(synchronized=True)) == 1

    def test_mark_synchronized_counts_transitions(self, store):
        """Only rows that changed are counted."""
        a = _insert(store)
        b = _insert(store)

        assert store.mark_synchronized([a, b, 9999]) == 2
        assert store.mark_synchronized([a, b]) == 0
        assert store.mark_synchronized([]) == 0
        assert store.count_entries(synchronized=False) == 0

    def test_aggregate(self, store):
        """Totals respect the timestamp range."""
        _insert(store, quantity=5, cost=2.0, created_at="2026-10-01T10:00:00Z")
        _insert(store, quantity=1, cost=0.0, created_at="2026-10-05T10:00:00Z")

        total = store.aggregate()
        assert total.total_value == pytest.approx(10.0)
        assert total.total_quantity == pytest.approx(6.0)
        assert total.total_entries == 2

        ranged = store.aggregate(start="2026-10-02T00:00:00Z")
        assert ranged.total_entries == 1
        assert ranged.total_value == 0

    def test_aggregate_empty(self, store):
        """An empty store sums to zero."""
        total = store.aggregate()
        assert total.total_value == 0
        assert total.total_entries == 0

    def test_aggregate_by_reason(self, store):
        """Reasons are ordered by total value."""
        _insert(store, reason_id="1", quantity=1, cost=1.0)
        _insert(store, reason_id="2", quantity=2, cost=5.0)
        _insert(store, reason_id="2", quantity=1, cost=1.0)

        rows = store.aggregate_by_reason()
        assert [r.reason_code for r in rows] == ["02", "01"]
        assert rows[0].aggregate.total_entries == 2
        assert rows[0].aggregate.total_value == pytest.approx(11.0)

    def test_reason_usage_orders_by_count(self, store):
        """Most referenced reasons first, ties broken by code."""
        _insert(store, reason_id="3")
        _insert(store, reason_id="3")
        _insert(store, reason_id="2")

        usage = store.reason_usage(limit=3)

        assert [(u.reason_code, u.usage_count) for u in usage] == [("03", 2), ("02", 1), ("01", 0)]
        assert usage[0].description == store.get_reason("3").description

    def test_reason_usage_includes_unused(self, store):
        """With no entries every active reason is listed with a zero count."""
        usage = store.reason_usage(limit=20)

        assert len(usage) == len(DEFAULT_REASONS)
        assert all(u.usage_count == 0 for u in usage)
        assert [u.reason_code for u in usage] == sorted(u.reason_code for u in usage)

    def test_reason_usage_skips_inactive(self):
        """Inactive reasons are not ranked."""
        store = InMemoryStore(seed=False)
        store.seed_reasons(
            [
                Reason(id="1", code="01", description="A"),
                Reason(id="2", code="02", description="B", is_active=False),
            ]
        )
        _insert(store, reason_id="2")

        assert [u.reason_id for u in store.reason_usage()] == ["1"]


class TestImportLog:
    """Import run bookkeeping on both backends."""

    def test_record_and_list(self, store):
        """Runs are listed newest first."""
        store.record_import("a.txt", 3, 2, 1)
        store.record_import("b.txt", 1, 1, 0)

        runs = store.list_imports()
        assert [r.file_name for r in runs] == ["b.txt", "a.txt"]
        assert runs[1].lines_failed == 1

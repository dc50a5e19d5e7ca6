"""
SQLite-based store implementation.

Tables:
- products: Catalog products keyed by code
- reasons: Loss reasons (seeded once)
- entries: Loss entries with the synchronization flag
- import_log: One row per import run

Schema is owned by the versioned migrations in ``store.migrations``.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import PersistenceError
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

logger = logging.getLogger(__name__)

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on old builds.
_ID_CHUNK_SIZE = 500


class SQLiteStore(EntryStore):
    """
    SQLite-backed entry and catalog store.

    Opens a short-lived connection per operation and commits per operation.
    Safe for single-writer use.
    """

    def __init__(
        self,
        db_path: Path | str,
        run_migrations: bool = True,
        seed: bool = True,
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
            run_migrations: Whether to run pending migrations (default True)
            seed: Whether to seed the default reasons into an empty table
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create database directory {self.db_path.parent}: {e}") from e
        if run_migrations:
            self._run_migrations()
        if seed:
            self.seed_reasons(DEFAULT_REASONS)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions.

        Any sqlite3 error is rolled back and re-raised as PersistenceError.
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _run_migrations(self) -> None:
        """Run pending database migrations."""
        from .migrations import MigrationRunner

        conn = self._get_connection()
        try:
            MigrationRunner(conn).run_pending()
        except sqlite3.Error as e:
            raise PersistenceError(f"Migration failed: {e}") from e
        finally:
            conn.close()

    def schema_version(self) -> int:
        """Highest applied migration version."""
        from .migrations import MigrationRunner

        with self._transaction() as conn:
            return MigrationRunner(conn).get_current_version()

    # Catalog

    def get_product(self, code: str) -> Product | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM products WHERE code = ? AND deleted_at IS NULL", (code,)
            ).fetchone()
        return Product.from_row(row) if row else None

    def upsert_product(self, product: Product) -> None:
        """Insert or update a product; updating clears a soft delete."""
        now = utc_now()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO products
                (code, name, unit_type, regular_price, club_price, created_at, updated_at, deleted_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(code) DO UPDATE SET
                    name = excluded.name,
                    unit_type = excluded.unit_type,
                    regular_price = excluded.regular_price,
                    club_price = excluded.club_price,
                    updated_at = excluded.updated_at,
                    deleted_at = excluded.deleted_at
            """,
                (
                    product.code,
                    product.name,
                    product.unit_type.value,
                    product.regular_price,
                    product.club_price,
                    product.created_at or now,
                    now,
                    product.deleted_at,
                ),
            )

    def soft_delete_product(self, code: str) -> bool:
        now = utc_now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE products SET deleted_at = ?, updated_at = ?
                WHERE code = ? AND deleted_at IS NULL
            """,
                (now, now, code),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Product {code} soft-deleted")
        return deleted

    def search_products(self, term: str, limit: int = 10) -> list[Product]:
        pattern = f"%{term}%"
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM products
                WHERE deleted_at IS NULL AND (code LIKE ? OR name LIKE ?)
                ORDER BY name COLLATE NOCASE
                LIMIT ?
            """,
                (pattern, pattern, limit),
            ).fetchall()
        return [Product.from_row(row) for row in rows]

    def list_reasons(self, active_only: bool = True) -> list[Reason]:
        query = "SELECT * FROM reasons"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY code"
        with self._transaction() as conn:
            rows = conn.execute(query).fetchall()
        return [Reason.from_row(row) for row in rows]

    def get_reason(self, reason_id: str) -> Reason | None:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM reasons WHERE id = ?", (reason_id,)).fetchone()
        return Reason.from_row(row) if row else None

    def get_reason_by_code(self, code: str) -> Reason | None:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM reasons WHERE code = ?", (code,)).fetchone()
        return Reason.from_row(row) if row else None

    def seed_reasons(self, reasons: Iterable[Reason]) -> int:
        with self._transaction() as conn:
            existing = conn.execute("SELECT COUNT(*) FROM reasons").fetchone()[0]
            if existing:
                return 0
            inserted = 0
            for reason in reasons:
                conn.execute(
                    """
                    INSERT INTO reasons (id, code, description, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """,
                    (
                        reason.id,
                        reason.code,
                        reason.description,
                        int(reason.is_active),
                        reason.created_at or SEED_TIMESTAMP,
                        reason.updated_at or SEED_TIMESTAMP,
                    ),
                )
                inserted += 1
        logger.info(f"Seeded {inserted} reasons")
        return inserted

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
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO entries
                (product_code, product_name, reason_id, quantity, unit_cost, notes,
                 is_synchronized, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    product_code,
                    product_name,
                    reason_id,
                    quantity,
                    unit_cost,
                    notes,
                    int(is_synchronized),
                    created_at,
                ),
            )
            return cursor.lastrowid

    def find_entries(
        self,
        reason_id: str | None = None,
        synchronized: bool | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Entry]:
        clauses = []
        params: list = []
        if reason_id is not None:
            clauses.append("reason_id = ?")
            params.append(reason_id)
        if synchronized is True:
            clauses.append("is_synchronized = 1")
        elif synchronized is False:
            clauses.append("(is_synchronized = 0 OR is_synchronized IS NULL)")
        if start is not None:
            clauses.append("created_at >= ?")
            params.append(start)
        if end is not None:
            clauses.append("created_at <= ?")
            params.append(end)

        query = "SELECT * FROM entries"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at ASC, id ASC"

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Entry.from_row(row) for row in rows]

    def mark_synchronized(self, entry_ids: Iterable[int]) -> int:
        ids = list(dict.fromkeys(entry_ids))
        if not ids:
            return 0
        changed = 0
        with self._transaction() as conn:
            for i in range(0, len(ids), _ID_CHUNK_SIZE):
                chunk = ids[i : i + _ID_CHUNK_SIZE]
                placeholders = ", ".join("?" for _ in chunk)
                cursor = conn.execute(
                    f"""
                    UPDATE entries SET is_synchronized = 1
                    WHERE id IN ({placeholders})
                    AND (is_synchronized = 0 OR is_synchronized IS NULL)
                """,
                    chunk,
                )
                changed += cursor.rowcount
        return changed

    def count_entries(self, synchronized: bool | None = None) -> int:
        query = "SELECT COUNT(*) FROM entries"
        if synchronized is True:
            query += " WHERE is_synchronized = 1"
        elif synchronized is False:
            query += " WHERE (is_synchronized = 0 OR is_synchronized IS NULL)"
        with self._transaction() as conn:
            return conn.execute(query).fetchone()[0]

    @staticmethod
    def _range_clause(start: str | None, end: str | None, column: str) -> tuple[str, list]:
        clauses = []
        params = []
        if start is not None:
            clauses.append(f"{column} >= ?")
            params.append(start)
        if end is not None:
            clauses.append(f"{column} <= ?")
            params.append(end)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    def aggregate(self, start: str | None = None, end: str | None = None) -> LossAggregate:
        where, params = self._range_clause(start, end, "created_at")
        with self._transaction() as conn:
            row = conn.execute(
                f"""
                SELECT
                    SUM(quantity * COALESCE(unit_cost, 0)) AS total_value,
                    SUM(quantity) AS total_quantity,
                    COUNT(*) AS total_entries
                FROM entries{where}
            """,
                params,
            ).fetchone()
        return LossAggregate(
            total_value=row["total_value"] or 0.0,
            total_quantity=row["total_quantity"] or 0.0,
            total_entries=row["total_entries"] or 0,
        )

    def aggregate_by_reason(
        self, start: str | None = None, end: str | None = None
    ) -> list[ReasonLoss]:
        where, params = self._range_clause(start, end, "e.created_at")
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT
                    r.id AS reason_id,
                    r.code AS reason_code,
                    r.description AS description,
                    SUM(e.quantity * COALESCE(e.unit_cost, 0)) AS total_value,
                    SUM(e.quantity) AS total_quantity,
                    COUNT(e.id) AS total_entries
                FROM entries e
                JOIN reasons r ON e.reason_id = r.id{where}
                GROUP BY r.id, r.code, r.description
                ORDER BY total_value DESC, r.code ASC
            """,
                params,
            ).fetchall()
        return [
            ReasonLoss(
                reason_id=row["reason_id"],
                reason_code=row["reason_code"],
                description=row["description"],
                aggregate=LossAggregate(
                    total_value=row["total_value"] or 0.0,
                    total_quantity=row["total_quantity"] or 0.0,
                    total_entries=row["total_entries"],
                ),
            )
            for row in rows
        ]

    def reason_usage(self, limit: int = 5) -> list[ReasonUsage]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT r.id, r.code, r.description, COUNT(e.id) AS usage_count
                FROM reasons r
                LEFT JOIN entries e ON e.reason_id = r.id
                WHERE r.is_active = 1
                GROUP BY r.id, r.code, r.description
                ORDER BY usage_count DESC, r.code ASC
                LIMIT ?
            """,
                (limit,),
            ).fetchall()
        return [
            ReasonUsage(
                reason_id=row["id"],
                reason_code=row["code"],
                description=row["description"],
                usage_count=row["usage_count"],
            )
            for row in rows
        ]

    # Import log

    def record_import(
        self,
        file_name: str,
        lines_total: int,
        lines_inserted: int,
        lines_failed: int,
    ) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO import_log
                (file_name, imported_at, lines_total, lines_inserted, lines_failed)
                VALUES (?, ?, ?, ?, ?)
            """,
                (file_name, utc_now(), lines_total, lines_inserted, lines_failed),
            )
            return cursor.lastrowid

    def list_imports(self, limit: int = 20) -> list[ImportLogRecord]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM import_log ORDER BY imported_at DESC, id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [
            ImportLogRecord(
                id=row["id"],
                file_name=row["file_name"],
                imported_at=row["imported_at"],
                lines_total=row["lines_total"],
                lines_inserted=row["lines_inserted"],
                lines_failed=row["lines_failed"],
            )
            for row in rows
        ]

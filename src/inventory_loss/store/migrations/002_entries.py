"""
Migration 002: entries table.

Cost and notes columns arrive in migration 003.
"""

import sqlite3

VERSION = 2
NAME = "entries"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create entries table."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_code TEXT NOT NULL,
            product_name TEXT NOT NULL,
            reason_id TEXT NOT NULL,
            quantity REAL NOT NULL CHECK (quantity > 0),
            is_synchronized INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY (reason_id) REFERENCES reasons(id)
        )
    """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_product ON entries(product_code)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_created ON entries(created_at)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_entries_pending ON entries(reason_id, is_synchronized)"
    )


def downgrade(conn: sqlite3.Connection) -> None:
    conn.execute("DROP TABLE IF EXISTS entries")

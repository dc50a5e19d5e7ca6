"""
Migration 003: unit_cost and notes columns on entries.

Databases created by older builds may already carry either column, so each
one is added only when schema introspection shows it missing.
"""

import sqlite3

from .runner import add_column_if_absent

VERSION = 3
NAME = "entries_cost_notes"


def upgrade(conn: sqlite3.Connection) -> None:
    """Add unit_cost and notes to entries."""
    if add_column_if_absent(conn, "entries", "unit_cost", "REAL NOT NULL DEFAULT 0"):
        conn.execute("UPDATE entries SET unit_cost = 0 WHERE unit_cost IS NULL")
    add_column_if_absent(conn, "entries", "notes", "TEXT")


def downgrade(conn: sqlite3.Connection) -> None:
    """Columns are left in place; older SQLite builds cannot drop them."""
    pass

"""
Migration 004: import_log table.

One row per import run, for the status report.
"""

import sqlite3

VERSION = 4
NAME = "import_log"


def upgrade(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS import_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            file_name TEXT NOT NULL,
            imported_at TEXT NOT NULL,
            lines_total INTEGER NOT NULL,
            lines_inserted INTEGER NOT NULL,
            lines_failed INTEGER NOT NULL
        )
    """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_import_log_date ON import_log(imported_at)")


def downgrade(conn: sqlite3.Connection) -> None:
    conn.execute("DROP TABLE IF EXISTS import_log")

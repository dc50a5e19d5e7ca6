"""
Migration 001: products and reasons tables.
"""

import sqlite3

VERSION = 1
NAME = "catalog"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create products and reasons tables."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            code TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            unit_type TEXT NOT NULL DEFAULT 'UN' CHECK (unit_type IN ('KG', 'UN')),
            regular_price REAL NOT NULL DEFAULT 0,
            club_price REAL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT
        )
    """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_products_name ON products(name COLLATE NOCASE)"
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS reasons (
            id TEXT PRIMARY KEY,
            code TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """
    )


def downgrade(conn: sqlite3.Connection) -> None:
    conn.execute("DROP TABLE IF EXISTS products")
    conn.execute("DROP TABLE IF EXISTS reasons")

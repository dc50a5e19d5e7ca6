"""
Schema migrations for the SQLite store.

Each migration lives in a module named ``NNN_name.py`` next to this file and
defines ``VERSION``, ``NAME``, ``upgrade(conn)`` and optionally
``downgrade(conn)``. Applied versions are recorded in the ``migrations``
table; a version is applied at most once.

Column additions go through ``add_column_if_absent`` so a database that
already carries the column (older builds patched it in place) upgrades
cleanly.
"""

import importlib
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..records import utc_now

logger = logging.getLogger(__name__)

MIGRATION_GLOB = "[0-9][0-9][0-9]_*.py"

MigrationStep = Callable[[sqlite3.Connection], None]


@dataclass(frozen=True)
class Migration:
    """One versioned schema change."""

    version: int
    name: str
    upgrade: MigrationStep
    downgrade: MigrationStep | None = None

    @classmethod
    def load(cls, module_name: str) -> "Migration":
        """Import ``module_name`` from this package.

        Raises:
            ImportError: The module is missing or lacks VERSION/NAME/upgrade.
        """
        module = importlib.import_module(f"{__package__}.{module_name}")
        try:
            return cls(
                version=module.VERSION,
                name=module.NAME,
                upgrade=module.upgrade,
                downgrade=getattr(module, "downgrade", None),
            )
        except AttributeError as e:
            raise ImportError(f"Migration module {module_name} is incomplete: {e}") from e


def get_all_migrations() -> list[Migration]:
    """Every migration shipped with the package, lowest version first."""
    modules = sorted(p.stem for p in Path(__file__).parent.glob(MIGRATION_GLOB))
    return sorted((Migration.load(name) for name in modules), key=lambda m: m.version)


def column_names(conn: sqlite3.Connection, table: str) -> set[str]:
    """Columns currently present on ``table`` (empty if the table is missing)."""
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


def add_column_if_absent(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> bool:
    """Add ``column`` unless introspection shows it already exists.

    Returns True when the column was added.
    """
    if column in column_names(conn, table):
        logger.debug(f"{table}.{column} already present")
        return False
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
    return True


class MigrationRunner:
    """Applies and reverts migrations on one open connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS migrations (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
        """
        )
        self.conn.commit()

    def get_applied_versions(self) -> set[int]:
        return {row[0] for row in self.conn.execute("SELECT version FROM migrations")}

    def get_current_version(self) -> int:
        """Highest applied version, 0 for an empty database."""
        (version,) = self.conn.execute("SELECT COALESCE(MAX(version), 0) FROM migrations").fetchone()
        return version

    def pending(self) -> list[Migration]:
        applied = self.get_applied_versions()
        return [m for m in get_all_migrations() if m.version not in applied]

    def _run_step(self, migration: Migration, step: MigrationStep, record: tuple[str, tuple]) -> None:
        """Run ``step`` and the bookkeeping statement in one transaction."""
        try:
            step(self.conn)
            self.conn.execute(*record)
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            logger.error(f"Migration {migration.version} ({migration.name}) failed: {e}")
            raise

    def apply_migration(self, migration: Migration) -> None:
        logger.info(f"Applying migration {migration.version}: {migration.name}")
        self._run_step(
            migration,
            migration.upgrade,
            (
                "INSERT INTO migrations (version, name, applied_at) VALUES (?, ?, ?)",
                (migration.version, migration.name, utc_now()),
            ),
        )

    def rollback_migration(self, migration: Migration) -> None:
        if migration.downgrade is None:
            raise NotImplementedError(
                f"Migration {migration.version} ({migration.name}) cannot be rolled back"
            )
        logger.info(f"Rolling back migration {migration.version}: {migration.name}")
        self._run_step(
            migration,
            migration.downgrade,
            ("DELETE FROM migrations WHERE version = ?", (migration.version,)),
        )

    def run_pending(self) -> list[int]:
        """Apply every migration not yet recorded. Returns the versions applied."""
        applied = []
        for migration in self.pending():
            self.apply_migration(migration)
            applied.append(migration.version)

        if applied:
            logger.info(f"Schema upgraded through migrations {applied}")
        else:
            logger.debug("Schema is up to date")
        return applied

    def migrate_to(self, target_version: int) -> None:
        """Upgrade or downgrade until ``target_version`` is the current version."""
        current = self.get_current_version()
        by_version = {m.version: m for m in get_all_migrations()}

        if target_version > current:
            for version in sorted(v for v in by_version if current < v <= target_version):
                self.apply_migration(by_version[version])
        elif target_version < current:
            for version in sorted((v for v in by_version if target_version < v <= current), reverse=True):
                self.rollback_migration(by_version[version])

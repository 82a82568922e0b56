"""Database connection management for productive-pm local storage."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from .schema import SCHEMA_VERSION, get_migration_sql


class Database:
    """SQLite database wrapper with migration support.

    A new connection is opened per operation, so one Database can be
    shared by concurrent resolutions running in worker threads.

    Usage:
        db = Database(Path(".productive/cache.db"))

        with db.connection() as conn:
            row = conn.execute("SELECT match FROM resolve_cache WHERE key = ?", (key,)).fetchone()

        with db.transaction() as conn:
            conn.execute("DELETE FROM resolve_cache WHERE org_id = ?", (org_id,))
    """

    def __init__(self, db_path: Path):
        """Initialize database, running migrations if needed.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._migrate()

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection that commits on success and rolls back on exception."""
        with self.connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _migrate(self) -> None:
        """Bring the schema up to SCHEMA_VERSION."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            current_version = self._current_version(conn)
            if current_version < SCHEMA_VERSION:
                for sql in get_migration_sql(current_version, SCHEMA_VERSION):
                    conn.executescript(sql)
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,)
                )

    @staticmethod
    def _current_version(conn: sqlite3.Connection) -> int:
        result = conn.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        return result[0] if result else 0

    def get_version(self) -> int:
        """Get current schema version."""
        with self.connection() as conn:
            return self._current_version(conn)

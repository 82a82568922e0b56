"""Database module for productive-pm local storage.

SQLite persistence for the resolution cache, so identifiers resolved by
one command are reused by the next one.

Usage:
    from productive_pm.db import Database

    db = Database(Path(".productive/cache.db"))

    with db.connection() as conn:
        rows = conn.execute("SELECT key FROM resolve_cache").fetchall()
"""

from .connection import Database
from .schema import SCHEMA_VERSION

__all__ = ["Database", "SCHEMA_VERSION"]

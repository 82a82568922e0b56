"""Database schema definitions and migrations for productive-pm local storage."""

SCHEMA_VERSION = 2

# Initial schema (version 1)
SCHEMA_V1 = """
-- ============================================================
-- RESOLVE CACHE
-- Identifier -> resource match, keyed by (org, type, query)
-- ============================================================
CREATE TABLE IF NOT EXISTS resolve_cache (
    key TEXT PRIMARY KEY,                   -- resolve:<org>:<type>:<query>
    org_id TEXT NOT NULL DEFAULT 'default',
    resource_type TEXT NOT NULL,            -- person, project, company, deal, service
    query TEXT NOT NULL,
    match TEXT NOT NULL,                    -- JSON ResourceMatch
    cached_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_resolve_cache_org ON resolve_cache(org_id);
CREATE INDEX IF NOT EXISTS idx_resolve_cache_expires ON resolve_cache(expires_at);
"""

# Version 2: record whether the cached match was exact
SCHEMA_V2_MIGRATION = """
ALTER TABLE resolve_cache ADD COLUMN exact INTEGER NOT NULL DEFAULT 0;

CREATE INDEX IF NOT EXISTS idx_resolve_cache_type ON resolve_cache(org_id, resource_type);
"""


def get_migration_sql(from_version: int, to_version: int) -> list[str]:
    """Get SQL statements to migrate from one version to another.

    Args:
        from_version: Current schema version (0 for fresh install)
        to_version: Target schema version

    Returns:
        List of SQL scripts to execute in order
    """
    migrations = []

    if from_version < 1 <= to_version:
        migrations.append(SCHEMA_V1)

    if from_version < 2 <= to_version:
        migrations.append(SCHEMA_V2_MIGRATION)

    return migrations

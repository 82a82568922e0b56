"""Resolution cache: contract, key derivation and the SQLite implementation.

The resolver only relies on ``get(key)`` and ``set(key, match)``. Expiry is
owned by the cache implementation, never by the resolver.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
from urllib.parse import quote, unquote

from ..db import Database
from .types import ResourceMatch, ResourceType

logger = logging.getLogger(__name__)

# Exact matches (email, number) rarely change; name searches may.
EXACT_TTL = timedelta(hours=24)
FUZZY_TTL = timedelta(hours=1)


class ResolverCache(Protocol):
    """Minimal cache contract consumed by the resolver."""

    async def get(self, key: str) -> Optional[ResourceMatch]:
        ...

    async def set(self, key: str, match: ResourceMatch) -> None:
        ...


def normalize_query(query: str) -> str:
    return query.strip().lower()


def cache_key(
    org_id: Optional[str],
    resource_type: ResourceType,
    query: str,
    project_id: Optional[str] = None,
) -> str:
    """Build the cache key for an (organization, type, query) triple.

    Service lookups scoped to a project carry the project in the key, since
    the same name can pick a different service in another project. The
    organization segment is percent-encoded so it never contains ``:``.
    """
    subject = normalize_query(query)
    if resource_type == ResourceType.SERVICE and project_id:
        subject = f"{project_id}/{subject}"
    org = quote(org_id or "default", safe="")
    return f"resolve:{org}:{resource_type.value}:{subject}"


def key_org(key: str) -> str:
    """Organization a cache key belongs to."""
    prefix, sep, rest = key.partition(":")
    if prefix != "resolve" or not sep:
        return "default"
    return unquote(rest.partition(":")[0]) or "default"


async def cache_lookup(cache: Optional[ResolverCache], key: str) -> Optional[ResourceMatch]:
    """Read from the cache, treating any failure as a miss."""
    if cache is None:
        return None
    try:
        match = await cache.get(key)
    except Exception as e:
        logger.warning("Resolution cache read failed for %s: %s", key, e)
        return None
    if match is not None:
        logger.debug("Resolution cache hit: %s -> %s", key, match.id)
    return match


async def cache_store(cache: Optional[ResolverCache], key: str, match: ResourceMatch) -> None:
    """Write to the cache, ignoring failures."""
    if cache is None:
        return
    try:
        await cache.set(key, match)
    except Exception as e:
        logger.warning("Resolution cache write failed for %s: %s", key, e)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ResolutionCache:
    """SQLite-backed resolution cache stored in the local database.

    Usage:
        cache = ResolutionCache(Database(context.get_db_path()))
        resolver = create_resource_resolver(client, cache=cache, org_id="42")
    """

    def __init__(
        self,
        db: Database,
        exact_ttl: timedelta = EXACT_TTL,
        fuzzy_ttl: timedelta = FUZZY_TTL,
    ):
        """Initialize the cache.

        Args:
            db: Database holding the resolve_cache table
            exact_ttl: Lifetime of entries that came from an exact lookup
            fuzzy_ttl: Lifetime of entries that came from a name search
        """
        self.db = db
        self.exact_ttl = exact_ttl
        self.fuzzy_ttl = fuzzy_ttl

    async def get(self, key: str) -> Optional[ResourceMatch]:
        return await asyncio.to_thread(self.get_sync, key)

    async def set(self, key: str, match: ResourceMatch) -> None:
        await asyncio.to_thread(self.set_sync, key, match)

    def get_sync(self, key: str) -> Optional[ResourceMatch]:
        """Return the cached match for a key, or None if missing or expired."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT match, expires_at FROM resolve_cache WHERE key = ?",
                (key,),
            ).fetchone()

        if not row:
            return None
        if datetime.fromisoformat(row["expires_at"]) <= _now():
            return None
        return ResourceMatch.from_dict(json.loads(row["match"]))

    def set_sync(self, key: str, match: ResourceMatch) -> None:
        """Insert or replace the cached match for a key."""
        now = _now()
        ttl = self.exact_ttl if match.exact else self.fuzzy_ttl
        org_id = key_org(key)

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO resolve_cache (
                    key, org_id, resource_type, query, match, exact, cached_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    key,
                    org_id,
                    match.type.value,
                    match.query,
                    json.dumps(match.to_dict()),
                    int(match.exact),
                    now.isoformat(),
                    (now + ttl).isoformat(),
                ),
            )

    def clear(self, org_id: Optional[str] = None) -> int:
        """Delete cached entries, for one organization or all of them.

        Returns:
            Number of entries removed
        """
        with self.db.transaction() as conn:
            if org_id is None:
                cursor = conn.execute("DELETE FROM resolve_cache")
            else:
                cursor = conn.execute("DELETE FROM resolve_cache WHERE org_id = ?", (org_id,))
            return cursor.rowcount

    def stats(self, org_id: Optional[str] = None) -> dict:
        """Count live and expired entries, grouped by resource type."""
        now = _now()
        sql = "SELECT resource_type, expires_at FROM resolve_cache"
        params: tuple = ()
        if org_id is not None:
            sql += " WHERE org_id = ?"
            params = (org_id,)

        with self.db.connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        by_type: dict[str, int] = {}
        expired = 0
        for row in rows:
            if datetime.fromisoformat(row["expires_at"]) <= now:
                expired += 1
                continue
            by_type[row["resource_type"]] = by_type.get(row["resource_type"], 0) + 1

        return {
            "total": len(rows),
            "live": len(rows) - expired,
            "expired": expired,
            "by_type": by_type,
        }

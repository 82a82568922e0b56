"""Shared resolve operations for CLI and MCP."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from ..db import Database
from ..pm_config import resolve_context
from ..resolver import (
    ResolutionCache,
    ResourceResolver,
    detect_resource_type,
    require_single,
)
from ..resolver.filters import TypeMapping


async def resolve_identifier(
    resolver: ResourceResolver,
    query: str,
    type: Optional[str] = None,
    project_id: Optional[str] = None,
    first: bool = False,
    single: bool = False,
) -> dict:
    """Resolve a query and describe the matches.

    Args:
        single: Treat several matches as an error (quiet output, scripting).

    Raises:
        ResolveError: If nothing matches, or several do and ``single`` is set.
    """
    matches = await resolver.resolve(query, type=type, project_id=project_id, first=first)
    if single:
        matches = [require_single(matches, query, matches[0].type)]
    return {
        "query": query,
        "matches": [m.to_dict() for m in matches],
        "exact": len(matches) == 1 and matches[0].exact,
    }


def detect_type(query: str) -> dict:
    detection = detect_resource_type(query)
    return {
        "query": query,
        "detection": detection.to_dict() if detection else None,
    }


async def resolve_filters(
    resolver: ResourceResolver,
    filters: Mapping[str, str],
    type_mapping: Optional[TypeMapping] = None,
    project_id: Optional[str] = None,
) -> dict:
    """Resolve every mapped filter value; failures keep their original value."""
    result = await resolver.resolve_filters(filters, type_mapping, project_id=project_id)
    return result.to_dict()


def _open_cache(path: Optional[Path]) -> tuple[ResolutionCache, Optional[str], Path]:
    context = resolve_context(path)
    db_path = context.get_db_path()
    return ResolutionCache(Database(db_path)), context.organization_id, db_path


def cache_status(path: Optional[Path] = None) -> dict:
    cache, org_id, db_path = _open_cache(path)
    return {
        "path": str(db_path),
        "organization_id": org_id,
        **cache.stats(org_id),
    }


def cache_clear(path: Optional[Path] = None, all_orgs: bool = False) -> dict:
    cache, org_id, db_path = _open_cache(path)
    scope = None if all_orgs else (org_id or "default")
    removed = cache.clear(scope)
    return {
        "path": str(db_path),
        "organization_id": scope,
        "removed": removed,
    }

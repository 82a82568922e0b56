"""Resolving every eligible key of a filter map in one pass.

Batch resolution is best-effort: a value that cannot be resolved stays in
the filter as given, so the request can still be attempted against the
backend. It never raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .cache import ResolverCache
from .core import coerce_type, resolve
from .detection import is_numeric_id
from .errors import ResolveError
from .types import ResolutionMetadata, ResolveOptions, ResourceMatch, ResourceType

logger = logging.getLogger(__name__)

FILTER_TYPE_MAPPING: dict[str, ResourceType] = {
    # People
    "person_id": ResourceType.PERSON,
    "assignee_id": ResourceType.PERSON,
    "creator_id": ResourceType.PERSON,
    "responsible_id": ResourceType.PERSON,
    # Projects
    "project_id": ResourceType.PROJECT,
    # Companies
    "company_id": ResourceType.COMPANY,
    # Deals
    "deal_id": ResourceType.DEAL,
    # Services (may need project scope)
    "service_id": ResourceType.SERVICE,
}

TypeMapping = Mapping[str, Union[ResourceType, str]]


@dataclass
class FilterResolution:
    """Resolved filter values plus a record of every substitution made."""
    resolved: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, ResolutionMetadata] = field(default_factory=dict)

    @property
    def did_resolve(self) -> bool:
        return bool(self.metadata)

    def to_dict(self) -> dict:
        return {
            "resolved": dict(self.resolved),
            "metadata": {k: m.to_dict() for k, m in self.metadata.items()},
            "did_resolve": self.did_resolve,
        }


def merge_type_mapping(overrides: Optional[TypeMapping] = None) -> dict[str, ResourceType]:
    """Default mapping with per-call overrides applied on top."""
    mapping = dict(FILTER_TYPE_MAPPING)
    for key, value in (overrides or {}).items():
        mapping[key] = coerce_type(value, key)
    return mapping


def _checked_mapping(type_mapping: TypeMapping) -> dict[str, ResourceType]:
    mapping = {}
    for key, value in type_mapping.items():
        try:
            mapping[key] = coerce_type(value, key)
        except ResolveError as e:
            logger.warning("Ignoring filter %s: %s", key, e)
    return mapping


async def resolve_filter_ids(
    api: Any,
    filters: Mapping[str, str],
    type_mapping: Optional[TypeMapping] = None,
    *,
    project_id: Optional[str] = None,
    first: bool = True,
    cache: Optional[ResolverCache] = None,
    org_id: Optional[str] = None,
) -> FilterResolution:
    """Resolve human-friendly identifiers in a filter map.

    Args:
        api: API client used for lookups
        filters: Filter key -> raw value
        type_mapping: Filter key -> resource type. Defaults to FILTER_TYPE_MAPPING.
            Keys missing from it are passed through untouched.
        project_id: Scope for service lookups. Defaults to the filter's own
            project_id once that is resolved.
        first: Take the first candidate when a name matches several records.
            When False, an ambiguous value is kept as-is.
        cache: Optional resolution cache
        org_id: Organization the cache entries belong to

    Returns:
        FilterResolution with the new filter map and per-key metadata.
        Numeric and failed values get no metadata entry.
    """
    mapping = dict(FILTER_TYPE_MAPPING) if type_mapping is None else _checked_mapping(type_mapping)
    result = FilterResolution(resolved=dict(filters))

    pending = {
        key: mapping[key]
        for key, value in filters.items()
        if key in mapping and not is_numeric_id(value)
    }
    if not pending:
        return result

    async def resolve_key(key: str, scope: Optional[str]) -> Optional[ResourceMatch]:
        value = filters[key]
        try:
            matches = await resolve(
                api,
                value,
                ResolveOptions(type=pending[key], project_id=scope, first=first),
                cache=cache,
                org_id=org_id,
            )
        except Exception as e:
            logger.warning("Could not resolve %s=%r, keeping original value: %s", key, value, e)
            return None
        if len(matches) != 1:
            logger.warning("Ambiguous %s=%r (%d matches), keeping original value", key, value, len(matches))
            return None
        return matches[0]

    def apply(key: str, match: Optional[ResourceMatch]) -> None:
        if match is None:
            return
        result.resolved[key] = match.id
        result.metadata[key] = ResolutionMetadata(
            query=filters[key],
            id=match.id,
            label=match.label,
            type=match.type,
        )

    scope = project_id
    needs_scope = ResourceType.SERVICE in pending.values()
    if scope is None and needs_scope and "project_id" in filters:
        if "project_id" in pending:
            apply("project_id", await resolve_key("project_id", None))
            del pending["project_id"]
        if is_numeric_id(result.resolved["project_id"]):
            scope = result.resolved["project_id"]

    keys = list(pending)
    matches = await asyncio.gather(*(resolve_key(key, scope) for key in keys))
    for key, match in zip(keys, matches):
        apply(key, match)

    # Metadata in input order.
    result.metadata = {k: result.metadata[k] for k in filters if k in result.metadata}
    return result

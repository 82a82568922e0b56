"""Single-value resolution entry points."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional, Union

from .cache import ResolverCache, cache_key, cache_lookup, cache_store
from .detection import detect_resource_type, is_numeric_id
from .disambiguation import disambiguate
from .errors import ResolveError
from .strategies import TYPE_RESOLVERS
from .types import ResolveOptions, ResourceMatch, ResourceType

logger = logging.getLogger(__name__)

TypeLike = Union[ResourceType, str, None]

# Type reported for a numeric ID when the caller did not say what it is.
PLACEHOLDER_TYPE = ResourceType.PROJECT


def coerce_type(value: TypeLike, query: str = "") -> Optional[ResourceType]:
    """Accept a ResourceType or its string value."""
    if value is None or isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in ResourceType)
        raise ResolveError(f'Unknown resource type "{value}". Use one of: {valid}', query) from None


async def resolve(
    api: Any,
    query: str,
    options: Optional[ResolveOptions] = None,
    *,
    cache: Optional[ResolverCache] = None,
    org_id: Optional[str] = None,
) -> list[ResourceMatch]:
    """Resolve a human-friendly identifier to matching resources.

    Args:
        api: Client exposing get_people/get_projects/get_companies/get_deals/get_services
        query: Email, project or deal number, name, or numeric ID
        options: Explicit type, project scope for services, first-match flag
        cache: Optional resolution cache consulted before querying the API
        org_id: Organization the cache entries belong to

    Returns:
        One or more matches, in API order. Never empty.

    Raises:
        ResolveError: If the type cannot be determined or nothing matches.
            Errors from the API client propagate unchanged.
    """
    options = options or ResolveOptions()
    query = (query or "").strip()
    resource_type = coerce_type(options.type, query)

    if not query:
        raise ResolveError("Query must not be empty", query, resource_type)

    if is_numeric_id(query):
        return [
            ResourceMatch(
                id=query,
                type=resource_type or PLACEHOLDER_TYPE,
                label=query,
                query=query,
                exact=True,
            )
        ]

    if resource_type is None:
        detected = detect_resource_type(query)
        if detected is None:
            raise ResolveError(
                f'Cannot determine resource type for "{query}". Specify a type.',
                query,
            )
        resource_type = detected.type

    key = cache_key(org_id, resource_type, query, options.project_id)
    cached = await cache_lookup(cache, key)
    if cached is not None:
        # Keys are case-insensitive; report the caller's spelling.
        return [replace(cached, query=query)]

    strategy = TYPE_RESOLVERS[resource_type]
    scoped = ResolveOptions(type=resource_type, project_id=options.project_id, first=options.first)
    matches = await strategy.query(api, query, scoped)
    results = disambiguate(matches, query, resource_type, first=options.first)

    # Collapsed or ambiguous results are not cached.
    if len(matches) == 1:
        await cache_store(cache, key, results[0])

    logger.debug("Resolved %r as %s: %d match(es)", query, resource_type.value, len(results))
    return results


async def resolve_filter_value(
    api: Any,
    query: str,
    type: TypeLike,
    *,
    project_id: Optional[str] = None,
    cache: Optional[ResolverCache] = None,
    org_id: Optional[str] = None,
) -> str:
    """Resolve a value to the ID of its first match.

    Numeric values are returned unchanged without any API call.

    Raises:
        ResolveError: If nothing matches.
    """
    if is_numeric_id(query):
        return query

    results = await resolve(
        api,
        query,
        ResolveOptions(type=coerce_type(type, query), project_id=project_id, first=True),
        cache=cache,
        org_id=org_id,
    )
    return results[0].id

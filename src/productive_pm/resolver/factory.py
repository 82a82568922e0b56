"""Resolver bound to one API client and an optional cache."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .cache import ResolverCache
from .core import TypeLike, coerce_type, resolve, resolve_filter_value
from .filters import FilterResolution, TypeMapping, resolve_filter_ids
from .types import ResolveOptions, ResourceMatch


class ResourceResolver:
    """Resolves identifiers against one organization, with optional caching.

    Build one per command or MCP request and pass it explicitly:

        resolver = create_resource_resolver(client, cache=cache, org_id="42")
        person_id = await resolver.resolve_value("jane@acme.test", "person")
    """

    def __init__(
        self,
        api: Any,
        cache: Optional[ResolverCache] = None,
        org_id: Optional[str] = None,
    ):
        self.api = api
        self.cache = cache
        self.org_id = org_id

    async def resolve(
        self,
        query: str,
        type: TypeLike = None,
        project_id: Optional[str] = None,
        first: bool = False,
    ) -> list[ResourceMatch]:
        options = ResolveOptions(type=coerce_type(type, query), project_id=project_id, first=first)
        return await resolve(self.api, query, options, cache=self.cache, org_id=self.org_id)

    async def resolve_value(
        self,
        value: str,
        type: TypeLike,
        project_id: Optional[str] = None,
    ) -> str:
        return await resolve_filter_value(
            self.api,
            value,
            type,
            project_id=project_id,
            cache=self.cache,
            org_id=self.org_id,
        )

    async def resolve_filters(
        self,
        filters: Mapping[str, str],
        type_mapping: Optional[TypeMapping] = None,
        project_id: Optional[str] = None,
        first: bool = True,
    ) -> FilterResolution:
        return await resolve_filter_ids(
            self.api,
            filters,
            type_mapping,
            project_id=project_id,
            first=first,
            cache=self.cache,
            org_id=self.org_id,
        )


def create_resource_resolver(
    api: Any,
    cache: Optional[ResolverCache] = None,
    org_id: Optional[str] = None,
) -> ResourceResolver:
    return ResourceResolver(api, cache=cache, org_id=org_id)

"""Per-type lookup strategies.

Each strategy knows which API collection to query for its resource type
and which filter gives an exact match versus a fuzzy name search. The
strategies are stateless; the resolver picks one from ``TYPE_RESOLVERS``.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from .detection import DEAL_NUMBER_PATTERN, PROJECT_NUMBER_PATTERN, is_email
from .types import ResolveOptions, ResourceMatch, ResourceType

logger = logging.getLogger(__name__)

EXACT_PAGE_SIZE = 1
SEARCH_PAGE_SIZE = 10


def _rows(response: Optional[dict]) -> list[dict]:
    """Extract the record list from a JSON:API response."""
    if not response:
        return []
    return response.get("data") or []


def _attributes(row: dict) -> dict:
    return row.get("attributes") or {}


def _name_label(row: dict, fallback: str) -> str:
    return (_attributes(row).get("name") or "").strip() or fallback


def _person_label(row: dict, fallback: str) -> str:
    attrs = _attributes(row)
    full_name = f"{attrs.get('first_name') or ''} {attrs.get('last_name') or ''}".strip()
    return full_name or fallback


class TypeResolver:
    """Base strategy: fuzzy name search against one API collection."""

    resource_type: ResourceType
    collection: str

    def _fetch(self, api: Any, filter: dict, per_page: int):
        method = getattr(api, f"get_{self.collection}")
        logger.debug("Querying %s with filter=%s per_page=%d", self.collection, filter, per_page)
        return method(filter=filter, per_page=per_page)

    def label(self, row: dict, query: str) -> str:
        return _name_label(row, query)

    def to_match(self, row: dict, query: str, exact: bool) -> ResourceMatch:
        return ResourceMatch(
            id=str(row["id"]),
            type=self.resource_type,
            label=self.label(row, query),
            query=query,
            exact=exact,
        )

    def search_filter(self, query: str, options: ResolveOptions) -> dict:
        return {"query": query}

    async def search(self, api: Any, query: str, options: ResolveOptions) -> list[ResourceMatch]:
        response = await self._fetch(api, self.search_filter(query, options), SEARCH_PAGE_SIZE)
        return [self.to_match(row, query, exact=False) for row in _rows(response)]

    async def query(self, api: Any, query: str, options: ResolveOptions) -> list[ResourceMatch]:
        return await self.search(api, query, options)


class PersonResolver(TypeResolver):
    resource_type = ResourceType.PERSON
    collection = "people"

    def label(self, row: dict, query: str) -> str:
        return _person_label(row, query)

    async def query(self, api: Any, query: str, options: ResolveOptions) -> list[ResourceMatch]:
        if not is_email(query):
            return await self.search(api, query, options)

        response = await self._fetch(api, {"email": query}, EXACT_PAGE_SIZE)
        rows = _rows(response)
        return [self.to_match(rows[0], query, exact=True)] if rows else []


class NumberedResolver(TypeResolver):
    """Strategy for collections addressable by a prefixed number (PRJ-12, D-7).

    The prefix is stripped before the lookup. When that finds nothing the
    original string is tried once more, since some accounts store numbers
    with their display prefix.
    """

    number_pattern: re.Pattern
    number_filter: str

    async def _by_number(self, api: Any, number: str) -> list[dict]:
        return _rows(await self._fetch(api, {self.number_filter: number}, EXACT_PAGE_SIZE))

    async def query(self, api: Any, query: str, options: ResolveOptions) -> list[ResourceMatch]:
        found = self.number_pattern.fullmatch(query)
        if not found:
            return await self.search(api, query, options)

        rows = await self._by_number(api, found.group(2))
        if not rows:
            logger.debug("No %s with number %s, retrying with %r", self.resource_type.value, found.group(2), query)
            rows = await self._by_number(api, query)
        return [self.to_match(rows[0], query, exact=True)] if rows else []


class ProjectResolver(NumberedResolver):
    resource_type = ResourceType.PROJECT
    collection = "projects"
    number_pattern = PROJECT_NUMBER_PATTERN
    number_filter = "project_number"


class DealResolver(NumberedResolver):
    resource_type = ResourceType.DEAL
    collection = "deals"
    number_pattern = DEAL_NUMBER_PATTERN
    number_filter = "deal_number"


class CompanyResolver(TypeResolver):
    resource_type = ResourceType.COMPANY
    collection = "companies"


class ServiceResolver(TypeResolver):
    """Name search, optionally scoped to a project.

    A candidate whose name equals the query (ignoring case) counts as exact.
    """

    resource_type = ResourceType.SERVICE
    collection = "services"

    def search_filter(self, query: str, options: ResolveOptions) -> dict:
        filter = {"query": query}
        if options.project_id:
            filter["project_id"] = options.project_id
        return filter

    async def search(self, api: Any, query: str, options: ResolveOptions) -> list[ResourceMatch]:
        response = await self._fetch(api, self.search_filter(query, options), SEARCH_PAGE_SIZE)
        wanted = query.lower()
        return [
            self.to_match(row, query, exact=(_attributes(row).get("name") or "").lower() == wanted)
            for row in _rows(response)
        ]


TYPE_RESOLVERS: dict[ResourceType, TypeResolver] = {
    ResourceType.PERSON: PersonResolver(),
    ResourceType.PROJECT: ProjectResolver(),
    ResourceType.COMPANY: CompanyResolver(),
    ResourceType.DEAL: DealResolver(),
    ResourceType.SERVICE: ServiceResolver(),
}

"""Turning zero, one or many candidate matches into a result."""

from __future__ import annotations

from typing import Optional

from .errors import ResolveError
from .types import ResourceMatch, ResourceType


def disambiguate(
    matches: list[ResourceMatch],
    query: str,
    resource_type: ResourceType,
    first: bool = False,
) -> list[ResourceMatch]:
    """Apply the not-found and first-match rules to candidate matches.

    Candidates keep the order the API returned them in. Several matches
    without ``first`` are returned as-is; whether that is an error is up
    to the caller (see ``require_single``).

    Raises:
        ResolveError: If there are no candidates.
    """
    if not matches:
        raise ResolveError(
            f'No {resource_type.value} found matching "{query}"',
            query,
            resource_type,
        )
    if first and len(matches) > 1:
        return [matches[0]]
    return list(matches)


def require_single(
    matches: list[ResourceMatch],
    query: str,
    resource_type: Optional[ResourceType] = None,
) -> ResourceMatch:
    """Return the only match, or raise an ambiguity error listing all of them."""
    if len(matches) > 1:
        raise ResolveError(
            f'Multiple matches found for "{query}". Use --first to return the first match.',
            query,
            resource_type,
            suggestions=matches,
        )
    if not matches:
        raise ResolveError(f'No match found for "{query}"', query, resource_type)
    return matches[0]

"""Resource resolution: human-friendly identifiers to Productive IDs.

Usage:
    from productive_pm.resolver import resolve, ResolveOptions

    matches = await resolve(client, "jane@acme.test")
    project = await resolve(client, "Launch", ResolveOptions(type="project", first=True))
"""

from .cache import ResolutionCache, ResolverCache, cache_key
from .core import resolve, resolve_filter_value
from .detection import detect_resource_type, is_numeric_id, needs_resolution
from .disambiguation import disambiguate, require_single
from .errors import ResolveError, format_match
from .factory import ResourceResolver, create_resource_resolver
from .filters import FILTER_TYPE_MAPPING, FilterResolution, merge_type_mapping, resolve_filter_ids
from .types import (
    DetectionResult,
    ResolutionMetadata,
    ResolveOptions,
    ResourceMatch,
    ResourceType,
)

__all__ = [
    "ResolutionCache",
    "ResolverCache",
    "cache_key",
    "resolve",
    "resolve_filter_value",
    "detect_resource_type",
    "is_numeric_id",
    "needs_resolution",
    "disambiguate",
    "require_single",
    "ResolveError",
    "format_match",
    "ResourceResolver",
    "create_resource_resolver",
    "FILTER_TYPE_MAPPING",
    "FilterResolution",
    "merge_type_mapping",
    "resolve_filter_ids",
    "DetectionResult",
    "ResolutionMetadata",
    "ResolveOptions",
    "ResourceMatch",
    "ResourceType",
]

"""Shared service layer for CLI and MCP."""

from .context import (
    resolve_context_info,
    get_client_for_path,
    get_cache_for_context,
    get_resolver_for_path,
)
from .resolve import (
    resolve_identifier,
    detect_type,
    resolve_filters,
    cache_status,
    cache_clear,
)

__all__ = [
    "resolve_context_info",
    "get_client_for_path",
    "get_cache_for_context",
    "get_resolver_for_path",
    "resolve_identifier",
    "detect_type",
    "resolve_filters",
    "cache_status",
    "cache_clear",
]

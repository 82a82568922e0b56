"""Context, client and resolver construction shared by CLI and MCP."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..api_client import ProductiveClient
from ..db import Database
from ..pm_config import PMContext, resolve_context, get_context_help_message
from ..resolver import ResolutionCache, ResourceResolver, create_resource_resolver

logger = logging.getLogger(__name__)


def resolve_context_info(path: Optional[Path] = None) -> dict:
    """Return context info and help text if not configured."""
    context = resolve_context(path)
    return {
        "config_source": context.config_source,
        "config_path": str(context.config_path) if context.config_path else None,
        "organization_id": context.organization_id,
        "api_token_configured": context.api_token is not None,
        "api_token_env": context.api_token_env,
        "cache_enabled": context.cache_enabled,
        "cache_path": str(context.get_db_path()),
        "help": get_context_help_message(context) if context.config_source == "none" else None,
    }


def get_client_for_path(path: Optional[Path] = None) -> tuple[ProductiveClient, PMContext]:
    """Return Productive client + resolved context for a path.

    Raises:
        AuthenticationError: If the token or organization is missing.
    """
    context = resolve_context(path)
    return ProductiveClient.from_context(context), context


def get_cache_for_context(context: PMContext) -> Optional[ResolutionCache]:
    """Open the resolution cache for a context, or None when disabled."""
    if not context.cache_enabled:
        return None
    try:
        return ResolutionCache(Database(context.get_db_path()))
    except Exception as e:
        # Resolution works without the cache, only slower.
        logger.warning("Resolution cache unavailable at %s: %s", context.get_db_path(), e)
        return None


def get_resolver_for_path(
    path: Optional[Path] = None,
    use_cache: bool = True,
) -> tuple[ResourceResolver, PMContext]:
    """Build a resolver bound to the client and cache for a path."""
    client, context = get_client_for_path(path)
    cache = get_cache_for_context(context) if use_cache else None
    return create_resource_resolver(client, cache=cache, org_id=context.organization_id), context

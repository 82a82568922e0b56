"""MCP Server for productive-pm - Productive.io resource resolution.

Exposes identifier resolution to AI assistants so they can refer to people,
projects, companies, deals and services by email, number or name instead
of numeric IDs.

Supports directory-based configuration via .productive/config.json files.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from mcp.server.fastmcp import FastMCP, Context

from .api_client import AuthenticationError, ProductiveApiError, ProductiveConfig
from .output import format_response
from .resolver import ResolveError, ResourceResolver
from .services import (
    resolve_context_info,
    get_resolver_for_path,
    resolve_identifier as svc_resolve_identifier,
    detect_type as svc_detect_type,
    resolve_filters as svc_resolve_filters,
    cache_status as svc_cache_status,
    cache_clear as svc_cache_clear,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Client CWD Detection via MCP Roots
# ============================================================================
# The server's cwd is where the module runs, not the user's workspace.
# list_roots() gives the client's workspace roots.

_client_cwd: Optional[Path] = None
_roots_initialized: bool = False
_roots_lock: Optional[asyncio.Lock] = None


def _get_roots_lock() -> asyncio.Lock:
    """Get or create the roots lock (lazy init)."""
    global _roots_lock
    if _roots_lock is None:
        _roots_lock = asyncio.Lock()
    return _roots_lock


async def _ensure_roots_initialized(ctx: "Context") -> None:
    """Fetch and cache the client's first workspace root on first tool call."""
    global _client_cwd, _roots_initialized

    if _roots_initialized:
        return

    async with _get_roots_lock():
        if _roots_initialized:
            return

        try:
            result = await ctx.session.list_roots()
            if result.roots:
                uri = str(result.roots[0].uri)
                if uri.startswith("file:"):
                    _client_cwd = Path(unquote(urlparse(uri).path))
                elif uri.startswith("/"):
                    _client_cwd = Path(uri)
        except Exception as e:
            # list_roots is optional for clients
            logger.debug("list_roots unavailable: %s", e)
        finally:
            _roots_initialized = True


def _get_effective_path(path: Optional[str]) -> Optional[Path]:
    """Explicit path, else the cached client root, else None (cwd)."""
    if path:
        return Path(path)
    return _client_cwd


mcp = FastMCP(
    "productive-pm",
    instructions="""productive-pm - Productive.io identifier resolution

## Quick Reference

| Goal | Tool | Notes |
|------|------|-------|
| ID for an email / PRJ-123 / D-45 | `resolve("jane@acme.test")` | Type detected from the pattern |
| ID for a name | `resolve("Acme", type="company")` | Name searches need `type` |
| Several filter values at once | `resolve_filters({...})` | Unresolvable values are kept as given |
| What type is this? | `detect_resource_type("PRJ-12")` | No API call |

## Patterns
- email -> person
- PRJ-123 / P-123 -> project
- D-45 / DEAL-45 -> deal
- digits only -> already an ID, returned as-is

## Ambiguity
A name can match several records. `resolve` then returns all of them with
`exact: false`; pick one, or pass `first=True`.

## Config
- Uses `.productive/config.json` per directory
- `detect_pm_context` shows the active config""",
)


def _get_resolver_safe(path: Optional[str] = None) -> tuple[Optional[ResourceResolver], Optional[dict]]:
    """Build a resolver, or return an error payload describing why not."""
    try:
        resolver, _ = get_resolver_for_path(_get_effective_path(path))
        return resolver, None
    except AuthenticationError as e:
        return None, {
            "error": "authentication_required",
            "message": str(e),
            "suggestions": e.suggestions,
            "help": ProductiveConfig.get_auth_help_message(),
        }


def _api_error(e: ProductiveApiError) -> dict:
    return {
        "error": "api_error",
        "message": str(e),
        "status_code": e.status_code,
    }


@mcp.tool()
async def detect_pm_context(
    ctx: Context,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Detect Productive context for a path.

    Args:
        path: Directory to check (defaults to the client workspace)

    Returns config source, organization and auth status.
    """
    await _ensure_roots_initialized(ctx)
    result = resolve_context_info(_get_effective_path(path))
    return format_response(result, format)


@mcp.tool()
async def check_auth(
    ctx: Context,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Check that the configured API token works for the organization."""
    await _ensure_roots_initialized(ctx)

    resolver, error = _get_resolver_safe(path)
    if error:
        return format_response({"authenticated": False, **error}, format)

    try:
        await resolver.api.get_organization_memberships()
    except ProductiveApiError as e:
        return format_response({"authenticated": False, **_api_error(e)}, format)

    return format_response({
        "authenticated": True,
        "organization_id": resolver.org_id,
    }, format)


@mcp.tool()
async def resolve(
    ctx: Context,
    query: str,
    type: Optional[str] = None,
    project_id: Optional[str] = None,
    first: bool = False,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Resolve a human-friendly identifier to a Productive ID.

    Args:
        query: Email, project number (PRJ-123), deal number (D-45), name, or numeric ID
        type: person, project, company, deal or service. Required for plain names.
        project_id: Project ID to scope service lookups
        first: Return only the first match when a name matches several records

    Returns {query, matches: [{id, type, label, query, exact}], exact}.
    On failure returns {error: "ResolveError", message, query, type?, suggestions?}.
    """
    await _ensure_roots_initialized(ctx)

    resolver, error = _get_resolver_safe(path)
    if error:
        return format_response(error, format)

    try:
        result = await svc_resolve_identifier(
            resolver, query, type=type, project_id=project_id, first=first,
        )
    except ResolveError as e:
        return format_response(e.to_dict(), format)
    except ProductiveApiError as e:
        return format_response(_api_error(e), format)
    return format_response(result, format)


@mcp.tool()
def detect_resource_type(query: str, format: str = "toon") -> dict:
    """Classify a query by its pattern without calling the API.

    Returns {query, detection: {type, confidence, pattern} | null}.
    """
    return format_response(svc_detect_type(query), format)


@mcp.tool()
async def resolve_filters(
    ctx: Context,
    filters: dict[str, str],
    type_mapping: Optional[dict[str, str]] = None,
    project_id: Optional[str] = None,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Resolve identifiers in list filters, e.g. {"assignee_id": "jane@acme.test"}.

    Args:
        filters: Filter name -> value
        type_mapping: Filter name -> resource type. Defaults to the standard
            mapping (assignee_id/person_id/creator_id/responsible_id -> person,
            project_id -> project, company_id -> company, deal_id -> deal,
            service_id -> service).
        project_id: Project ID to scope service lookups

    Returns {resolved, metadata, did_resolve}. Values that cannot be resolved
    are kept unchanged and get no metadata entry.
    """
    await _ensure_roots_initialized(ctx)

    resolver, error = _get_resolver_safe(path)
    if error:
        return format_response(error, format)

    result = await svc_resolve_filters(resolver, filters, type_mapping, project_id=project_id)
    return format_response(result, format)


@mcp.tool()
async def cache_status(
    ctx: Context,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Show resolution cache statistics for the current organization."""
    await _ensure_roots_initialized(ctx)
    return format_response(svc_cache_status(_get_effective_path(path)), format)


@mcp.tool()
async def cache_clear(
    ctx: Context,
    all_orgs: bool = False,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Clear cached resolutions, e.g. after renaming a project or person."""
    await _ensure_roots_initialized(ctx)
    return format_response(svc_cache_clear(_get_effective_path(path), all_orgs=all_orgs), format)


def main():
    """Run the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

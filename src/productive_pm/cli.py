"""Main CLI for productive-pm."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .api_client import AuthenticationError, ProductiveApiError, ProductiveClient, ProductiveConfig
from .output import format_response, render_cli
from .pm_config import create_pm_config
from .resolver import ResolveError, ResourceMatch, ResourceType, format_match, merge_type_mapping
from .services import (
    resolve_context_info,
    get_resolver_for_path,
    resolve_identifier as svc_resolve_identifier,
    detect_type as svc_detect_type,
    resolve_filters as svc_resolve_filters,
    cache_status as svc_cache_status,
    cache_clear as svc_cache_clear,
)

app = typer.Typer(
    name="productive-pm",
    help="Productive.io client - resolve people, projects, companies, deals and services",
)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log API calls and cache activity"),
):
    """Productive.io command-line client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _fail(message: str, suggestions: Optional[list[str]] = None) -> None:
    err_console.print(f"[red]Error:[/red] {message}")
    for suggestion in suggestions or []:
        err_console.print(f"  [dim]{suggestion}[/dim]")
    raise typer.Exit(1)


def get_resolver(path: Optional[Path] = None, use_cache: bool = True):
    """Get a resolver for the path or exit with an authentication error."""
    try:
        resolver, _ = get_resolver_for_path(path, use_cache=use_cache)
        return resolver
    except AuthenticationError as e:
        err_console.print(f"[red]Authentication Error:[/red] {e}")
        err_console.print("")
        err_console.print(ProductiveConfig.get_auth_help_message())
        raise typer.Exit(1)


def _parse_pairs(pairs: list[str], option: str) -> dict[str, str]:
    parsed = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint=option)
        parsed[key.strip()] = value.strip()
    return parsed


def _print_output(text: str) -> None:
    """Print machine-readable output verbatim (no markup, no wrapping)."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def _print_match(match: ResourceMatch, indent: str = "") -> None:
    line = f"{indent}[green]{match.id}[/green]  [cyan]{escape(match.label)}[/cyan]  [dim]({match.type.value})[/dim]"
    if match.exact:
        line += "  [dim]\\[exact][/dim]"
    console.print(line)


# ============================================================================
# Context Commands
# ============================================================================


@app.command("context")
def show_context(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Path to check context for"),
    output_format: str = typer.Option("toon", "--format", "-f", help="Output format (toon|json|text)"),
):
    """Show detected Productive context for current or specified directory."""
    data = resolve_context_info(path or Path.cwd())
    _print_output(render_cli(format_response(data, output_format)))


@app.command("init")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory to initialize"),
    organization_id: Optional[str] = typer.Option(None, "--org-id", help="Productive organization ID"),
    api_token_env: Optional[str] = typer.Option(None, "--api-token-env", help="Environment variable holding the API token"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the resolution cache"),
):
    """Initialize .productive/config.json in current or specified directory."""
    target_path = Path(path) if path else Path.cwd()
    if not target_path.exists():
        _fail(f"Directory not found: {target_path}")

    existing_config = target_path / ".productive" / "config.json"
    if existing_config.exists():
        if not typer.confirm(f"Config already exists at {existing_config}. Overwrite?"):
            raise typer.Exit(0)

    if not organization_id:
        organization_id = typer.prompt("Organization ID")

    config_path = create_pm_config(
        path=target_path,
        organization_id=organization_id,
        api_token_env=api_token_env,
        cache_enabled=not no_cache,
    )

    console.print(f"\n[green]Created:[/green] {config_path}")
    console.print(config_path.read_text())
    console.print(f"\n[dim]Make sure {api_token_env or 'PRODUCTIVE_API_TOKEN'} is set in your environment.[/dim]")


# ============================================================================
# Auth Commands
# ============================================================================

auth_app = typer.Typer(help="Authentication commands")
app.add_typer(auth_app, name="auth")


@auth_app.command("setup")
def auth_setup(
    api_token: str = typer.Option(..., prompt=True, hide_input=True, help="Productive API token"),
    organization_id: str = typer.Option(..., "--org-id", prompt="Organization ID", help="Productive organization ID"),
):
    """Configure Productive API authentication."""
    config = ProductiveConfig(api_token=api_token, organization_id=organization_id)

    try:
        client = ProductiveClient(config)
        asyncio.run(client.get_organization_memberships())
    except (AuthenticationError, ProductiveApiError) as e:
        _fail(f"Failed to connect: {e}")

    config.save()
    console.print("[green]✓[/green] Configuration saved!")


@auth_app.command("status")
def auth_status(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Path for context detection"),
):
    """Check authentication status."""
    info = resolve_context_info(path)
    if not info["api_token_configured"] or not info["organization_id"]:
        console.print("[red]✗[/red] Not authenticated")
        console.print("Run: [cyan]productive-pm auth setup[/cyan]")
        raise typer.Exit(1)

    try:
        resolver = get_resolver(path, use_cache=False)
        asyncio.run(resolver.api.get_organization_memberships())
    except ProductiveApiError as e:
        console.print(f"[red]✗[/red] Authentication failed: {e}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Authenticated")
    console.print(f"  Organization: {info['organization_id']}")


# ============================================================================
# Resolve Commands
# ============================================================================


@app.command("resolve")
def resolve_command(
    query: str = typer.Argument(..., help="Email, project number (PRJ-123), deal number (D-12), name or ID"),
    resource_type: Optional[ResourceType] = typer.Option(None, "--type", "-t", help="Resource type (required for plain names)"),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID scoping service lookups"),
    first: bool = typer.Option(False, "--first", help="Return only the first match"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print only the resolved ID"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the resolution cache"),
    path: Optional[Path] = typer.Option(None, "--path", help="Path for context detection"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (text|json|toon)"),
):
    """Resolve a human-friendly identifier to its Productive ID.

    Examples:
        productive-pm resolve jane@acme.test
        productive-pm resolve PRJ-123 --quiet
        productive-pm resolve "Acme" --type company
    """
    resolver = get_resolver(path, use_cache=not no_cache)
    type_value = resource_type.value if resource_type else None

    try:
        with err_console.status("Resolving...", spinner="dots"):
            result = asyncio.run(svc_resolve_identifier(
                resolver,
                query,
                type=type_value,
                project_id=project,
                first=first,
                single=quiet,
            ))
    except ResolveError as e:
        if output_format == "json":
            _print_output(json.dumps(e.to_dict(), indent=2))
            raise typer.Exit(1)
        err_console.print(f"[red]{e.message}[/red]")
        if e.suggestions:
            err_console.print("")
            err_console.print("[cyan]Did you mean:[/cyan]")
            for suggestion in e.suggestions:
                err_console.print(f"  {format_match(suggestion)}", markup=False)
        raise typer.Exit(1)
    except ProductiveApiError as e:
        _fail(str(e))

    if quiet:
        console.print(result["matches"][0]["id"])
        return

    if output_format != "text":
        _print_output(render_cli(format_response(result, output_format)))
        return

    matches = [ResourceMatch.from_dict(m) for m in result["matches"]]
    if len(matches) == 1:
        _print_match(matches[0])
        return

    console.print(f"[cyan]Found {len(matches)} matches for \"{query}\":[/cyan]")
    console.print("")
    for match in matches:
        _print_match(match, indent="  ")


@app.command("detect")
def detect_command(
    query: str = typer.Argument(..., help="Identifier to classify"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (text|json|toon)"),
):
    """Show which resource type a query's pattern points to. No API call is made."""
    result = svc_detect_type(query)

    if output_format != "text":
        _print_output(render_cli(format_response(result, output_format)))
        return

    detection = result["detection"]
    console.print(f"[cyan]Query:[/cyan] {query}")
    if detection:
        console.print(f"[cyan]Type:[/cyan] {detection['type']}")
        console.print(f"[cyan]Pattern:[/cyan] {detection['pattern']}")
        console.print(f"[cyan]Confidence:[/cyan] {detection['confidence']}")
    else:
        console.print("[dim]No pattern detected. Use --type to specify resource type.[/dim]")


@app.command("filters")
def filters_command(
    filters: list[str] = typer.Argument(..., help="Filters as KEY=VALUE, e.g. assignee_id=jane@acme.test"),
    mapping: Optional[list[str]] = typer.Option(None, "--map", "-m", help="Extra KEY=TYPE mappings"),
    project: Optional[str] = typer.Option(None, "--project", help="Project ID scoping service lookups"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the resolution cache"),
    path: Optional[Path] = typer.Option(None, "--path", help="Path for context detection"),
    output_format: str = typer.Option("toon", "--format", "-f", help="Output format (toon|json|text)"),
):
    """Resolve identifiers in a set of list filters.

    Values that cannot be resolved are kept as given.
    """
    filter_map = _parse_pairs(filters, "FILTERS")
    try:
        type_mapping = merge_type_mapping(_parse_pairs(mapping or [], "--map"))
    except ResolveError as e:
        raise typer.BadParameter(e.message, param_hint="--map")

    resolver = get_resolver(path, use_cache=not no_cache)
    result = asyncio.run(svc_resolve_filters(resolver, filter_map, type_mapping, project_id=project))

    if output_format == "text":
        for key, info in result["metadata"].items():
            err_console.print(f"[dim]Resolved {key}: {escape(info['query'])} → {escape(info['label'])} ({info['id']})[/dim]")
    _print_output(render_cli(format_response(result, output_format)))


# ============================================================================
# Cache Commands
# ============================================================================

cache_app = typer.Typer(help="Resolution cache commands")
app.add_typer(cache_app, name="cache")


@cache_app.command("status")
def cache_status(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Path for context detection"),
    output_format: str = typer.Option("toon", "--format", "-f", help="Output format (toon|json|text)"),
):
    """Show resolution cache statistics."""
    _print_output(render_cli(format_response(svc_cache_status(path), output_format)))


@cache_app.command("clear")
def cache_clear(
    all_orgs: bool = typer.Option(False, "--all", help="Clear entries of every organization"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Path for context detection"),
):
    """Clear cached resolutions."""
    result = svc_cache_clear(path, all_orgs=all_orgs)
    console.print(f"[green]✓[/green] Removed {result['removed']} cached resolution(s)")


if __name__ == "__main__":
    app()

"""Shared output formatting for CLI and MCP."""

from .format import format_response, render_cli, render_text

__all__ = ["format_response", "render_cli", "render_text"]

"""Response envelopes shared by the CLI and MCP tools.

Every command and tool result is a plain dict payload wrapped as
``{"format": ..., "content": ...}``. JSON keeps the payload as-is, TOON and
text turn it into a string.
"""

from __future__ import annotations

import json
from typing import Any


def _encode_toon(payload: Any) -> str:
    """Encode payload to TOON format when available, else compact JSON."""
    try:
        from toon_format import encode  # type: ignore
    except ImportError:
        return json.dumps(payload, separators=(",", ":"))
    return encode(payload)


def _scalar(value: Any) -> str:
    if value is None or value == [] or value == {}:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def render_text(payload: Any, indent: int = 0) -> str:
    """Render a payload as indented ``key: value`` lines.

    Nested dicts are indented under their key; list items are marked with
    ``-`` so each match or metadata entry reads as its own block.
    """
    pad = "  " * indent
    lines: list[str] = []

    if isinstance(payload, dict):
        for key, value in payload.items():
            if isinstance(value, (dict, list)) and value:
                lines.append(f"{pad}{key}:")
                lines.append(render_text(value, indent + 1))
            else:
                lines.append(f"{pad}{key}: {_scalar(value)}")
    elif isinstance(payload, list):
        for item in payload:
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}-")
                lines.append(render_text(item, indent + 1))
            else:
                lines.append(f"{pad}- {_scalar(item)}")
    else:
        lines.append(f"{pad}{_scalar(payload)}")

    return "\n".join(lines)


def format_response(payload: Any, output_format: str = "toon") -> dict:
    """Wrap a payload for the requested output format.

    Unknown formats fall back to TOON, the compact default for MCP clients.
    """
    output_format = (output_format or "toon").strip().lower()

    if output_format == "json":
        return {"format": "json", "content": payload}
    if output_format == "text":
        return {"format": "text", "content": render_text(payload)}
    return {"format": "toon", "content": _encode_toon(payload)}


def render_cli(response: dict) -> str:
    """Turn a wrapped response into the string printed by the CLI."""
    if response.get("format") == "json":
        return json.dumps(response.get("content"), indent=2)
    return str(response.get("content"))

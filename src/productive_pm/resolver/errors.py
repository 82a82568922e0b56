"""Errors raised by the resource resolver."""

from __future__ import annotations

from typing import Optional

from .types import ResourceMatch, ResourceType


class ResolveError(Exception):
    """Raised when a query cannot be turned into a resource ID.

    Carries the original query, the resource type when it is known, and
    ranked suggestions when the query matched more than one record.
    """

    def __init__(
        self,
        message: str,
        query: str,
        type: Optional[ResourceType] = None,
        suggestions: Optional[list[ResourceMatch]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.query = query
        self.type = type
        self.suggestions = list(suggestions) if suggestions else []

    def to_dict(self) -> dict:
        """Structured form for machine consumers.

        ``type`` and ``suggestions`` are left out entirely when not set.
        """
        data = {
            "error": "ResolveError",
            "message": self.message,
            "query": self.query,
        }
        if self.type is not None:
            data["type"] = self.type.value
        if self.suggestions:
            data["suggestions"] = [s.to_dict() for s in self.suggestions]
        return data

    def format(self) -> str:
        """Human-readable message including suggestions."""
        lines = [self.message]
        if self.suggestions:
            lines.append("")
            lines.append("Did you mean:")
            for suggestion in self.suggestions:
                lines.append(f"  {format_match(suggestion)}")
        return "\n".join(lines)


def format_match(match: ResourceMatch) -> str:
    """Render a match as a single display line."""
    parts = [match.id, match.label, f"({match.type.value})"]
    if match.exact:
        parts.append("[exact]")
    return "  ".join(parts)

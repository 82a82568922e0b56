"""Data structures shared by the resource resolver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional


class ResourceType(Enum):
    """Resource collections that can be addressed by a human-friendly identifier."""
    PERSON = "person"
    PROJECT = "project"
    COMPANY = "company"
    DEAL = "deal"
    SERVICE = "service"


DetectionPattern = Literal["email", "project_number", "deal_number"]


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of matching a query against a known identifier pattern.

    Only unambiguous lexical patterns produce a detection, so confidence
    is always "high".
    """
    type: ResourceType
    pattern: DetectionPattern
    confidence: Literal["high"] = "high"

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "pattern": self.pattern,
        }


@dataclass
class ResolveOptions:
    """Options for a single resolution.

    Attributes:
        type: Overrides pattern detection. Required for bare names.
        project_id: Scopes service lookups to a project.
        first: Collapse multiple candidates to the first one.
    """
    type: Optional[ResourceType] = None
    project_id: Optional[str] = None
    first: bool = False


@dataclass(frozen=True)
class ResourceMatch:
    """A backend record matched by a query."""
    id: str
    type: ResourceType
    label: str
    query: str
    exact: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "query": self.query,
            "exact": self.exact,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ResourceMatch":
        return cls(
            id=str(data["id"]),
            type=ResourceType(data["type"]),
            label=data.get("label") or data["query"],
            query=data["query"],
            exact=bool(data.get("exact", False)),
        )


@dataclass(frozen=True)
class ResolutionMetadata:
    """Record of a filter value substituted by its resolved ID."""
    query: str
    id: str
    label: str
    type: ResourceType
    reusable: bool = True

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "reusable": self.reusable,
        }

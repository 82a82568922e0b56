"""Pattern-based classification of resource identifiers."""

from __future__ import annotations

import re
from typing import Optional

from .types import DetectionResult, ResourceType

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PROJECT_NUMBER_PATTERN = re.compile(r"(PRJ|P)-([0-9]+)", re.IGNORECASE)
DEAL_NUMBER_PATTERN = re.compile(r"(D|DEAL)-([0-9]+)", re.IGNORECASE)
NUMERIC_ID_PATTERN = re.compile(r"[0-9]+")


def is_numeric_id(value: str) -> bool:
    """Check if a value is already a numeric ID."""
    return isinstance(value, str) and NUMERIC_ID_PATTERN.fullmatch(value) is not None


def needs_resolution(value: str) -> bool:
    return not is_numeric_id(value)


def is_email(value: str) -> bool:
    return EMAIL_PATTERN.fullmatch(value) is not None


def detect_resource_type(query: str) -> Optional[DetectionResult]:
    """Detect the resource type a query refers to from its shape.

    Patterns are tried in priority order: email, project number, deal
    number. Anything else, numeric IDs included, yields None.
    """
    if not isinstance(query, str) or is_numeric_id(query):
        return None
    if EMAIL_PATTERN.fullmatch(query):
        return DetectionResult(type=ResourceType.PERSON, pattern="email")
    if PROJECT_NUMBER_PATTERN.fullmatch(query):
        return DetectionResult(type=ResourceType.PROJECT, pattern="project_number")
    if DEAL_NUMBER_PATTERN.fullmatch(query):
        return DetectionResult(type=ResourceType.DEAL, pattern="deal_number")
    return None

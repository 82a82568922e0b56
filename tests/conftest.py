"""Shared fixtures for productive-pm tests."""

from unittest.mock import AsyncMock, Mock

import pytest

COLLECTIONS = ("people", "projects", "companies", "deals", "services")


def row(id, **attributes) -> dict:
    """A JSON:API record."""
    return {"id": str(id), "type": "resource", "attributes": attributes}


def page(*rows) -> dict:
    return {"data": list(rows)}


@pytest.fixture
def api():
    """API client double whose list methods return no records by default."""
    client = Mock()
    for collection in COLLECTIONS:
        setattr(client, f"get_{collection}", AsyncMock(return_value=page()))
    return client


class MemoryCache:
    """In-memory resolution cache."""

    def __init__(self):
        self.entries = {}
        self.gets = []
        self.sets = []

    async def get(self, key):
        self.gets.append(key)
        return self.entries.get(key)

    async def set(self, key, match):
        self.sets.append(key)
        self.entries[key] = match


class BrokenCache:
    """Cache whose every operation fails."""

    async def get(self, key):
        raise RuntimeError("cache down")

    async def set(self, key, match):
        raise RuntimeError("cache down")


@pytest.fixture
def memory_cache():
    return MemoryCache()

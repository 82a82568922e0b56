"""Tests for the resolution cache."""

from datetime import timedelta
from pathlib import Path

import pytest

from productive_pm.db import Database
from productive_pm.resolver import (
    ResolutionCache,
    ResolveOptions,
    ResourceMatch,
    ResourceType,
    cache_key,
    resolve,
)
from productive_pm.resolver.cache import key_org

from conftest import BrokenCache, page, row


def _match(id="1", type=ResourceType.PERSON, query="jane@acme.test", exact=True):
    return ResourceMatch(id=id, type=type, label="Jane Doe", query=query, exact=exact)


class TestCacheKey:
    """Tests for cache_key."""

    def test_normalizes_query(self):
        assert cache_key("42", ResourceType.PERSON, "  Jane@Acme.TEST ") == "resolve:42:person:jane@acme.test"

    def test_default_org(self):
        assert cache_key(None, ResourceType.DEAL, "D-1") == "resolve:default:deal:d-1"

    def test_service_key_includes_project(self):
        assert cache_key("42", ResourceType.SERVICE, "Design", "100") == "resolve:42:service:100/design"
        assert cache_key("42", ResourceType.SERVICE, "Design") == "resolve:42:service:design"

    def test_project_ignored_for_other_types(self):
        assert cache_key("42", ResourceType.COMPANY, "Acme", "100") == "resolve:42:company:acme"

    def test_org_with_colon_is_encoded(self):
        key = cache_key("eu:42", ResourceType.PERSON, "a@x.test")

        assert key == "resolve:eu%3A42:person:a@x.test"
        assert key_org(key) == "eu:42"


class TestResolutionCache:
    """Tests for the SQLite-backed cache."""

    @pytest.fixture
    def cache(self, tmp_path: Path):
        return ResolutionCache(Database(tmp_path / "cache.db"))

    @pytest.mark.asyncio
    async def test_round_trip(self, cache):
        key = cache_key("42", ResourceType.PERSON, "jane@acme.test")
        await cache.set(key, _match())

        assert await cache.get(key) == _match()

    @pytest.mark.asyncio
    async def test_missing_key(self, cache):
        assert await cache.get("resolve:42:person:nobody") is None

    def test_expired_entry_is_a_miss(self, tmp_path: Path):
        cache = ResolutionCache(
            Database(tmp_path / "cache.db"),
            exact_ttl=timedelta(seconds=-1),
        )
        key = cache_key("42", ResourceType.PERSON, "jane@acme.test")
        cache.set_sync(key, _match())

        assert cache.get_sync(key) is None
        assert cache.stats()["expired"] == 1

    def test_fuzzy_matches_use_fuzzy_ttl(self, tmp_path: Path):
        cache = ResolutionCache(
            Database(tmp_path / "cache.db"),
            fuzzy_ttl=timedelta(seconds=-1),
        )
        exact_key = cache_key("42", ResourceType.PERSON, "jane@acme.test")
        fuzzy_key = cache_key("42", ResourceType.COMPANY, "acme")
        cache.set_sync(exact_key, _match())
        cache.set_sync(fuzzy_key, _match(id="2", type=ResourceType.COMPANY, query="Acme", exact=False))

        assert cache.get_sync(exact_key) is not None
        assert cache.get_sync(fuzzy_key) is None

    def test_set_replaces(self, cache):
        key = cache_key("42", ResourceType.PERSON, "jane@acme.test")
        cache.set_sync(key, _match(id="1"))
        cache.set_sync(key, _match(id="2"))

        assert cache.get_sync(key).id == "2"
        assert cache.stats()["total"] == 1

    def test_stats_and_clear_by_org(self, cache):
        cache.set_sync(cache_key("42", ResourceType.PERSON, "a@x.test"), _match())
        cache.set_sync(cache_key("42", ResourceType.PROJECT, "prj-1"), _match(type=ResourceType.PROJECT, query="PRJ-1"))
        cache.set_sync(cache_key("7", ResourceType.PERSON, "b@x.test"), _match())

        stats = cache.stats("42")
        assert stats == {
            "total": 2,
            "live": 2,
            "expired": 0,
            "by_type": {"person": 1, "project": 1},
        }

        assert cache.clear("42") == 2
        assert cache.stats()["total"] == 1
        assert cache.clear() == 1
        assert cache.stats()["total"] == 0

    def test_org_with_colon_is_cleared(self, cache):
        cache.set_sync(cache_key("eu:42", ResourceType.PERSON, "a@x.test"), _match())
        cache.set_sync(cache_key("eu", ResourceType.PERSON, "a@x.test"), _match())

        assert cache.stats("eu:42")["total"] == 1
        assert cache.clear("eu:42") == 1
        assert cache.stats("eu")["total"] == 1


class TestResolveWithCache:
    """Cache interaction during resolve."""

    @pytest.mark.asyncio
    async def test_hit_skips_api(self, api, memory_cache):
        memory_cache.entries[cache_key("42", ResourceType.PERSON, "jane@acme.test")] = _match(id="500521")

        result = await resolve(api, "Jane@Acme.test", cache=memory_cache, org_id="42")

        assert result[0].id == "500521"
        api.get_people.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_match_is_stored(self, api, memory_cache):
        api.get_people.return_value = page(row(500521, first_name="Jane", last_name="Doe"))

        first = await resolve(api, "jane@acme.test", cache=memory_cache, org_id="42")
        second = await resolve(api, "jane@acme.test", cache=memory_cache, org_id="42")

        assert first == second
        assert memory_cache.sets == ["resolve:42:person:jane@acme.test"]
        api.get_people.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hit_reports_callers_query(self, api, memory_cache):
        api.get_people.return_value = page(row(500521, first_name="Jane", last_name="Doe"))

        await resolve(api, "jane@acme.test", cache=memory_cache, org_id="42")
        result = await resolve(api, "JANE@acme.test", cache=memory_cache, org_id="42")

        assert result[0].query == "JANE@acme.test"
        assert result[0].id == "500521"
        api.get_people.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_service_cached_per_project(self, api, tmp_path: Path):
        cache = ResolutionCache(Database(tmp_path / "cache.db"))
        api.get_services.side_effect = [
            page(row(1, name="Design")),
            page(row(2, name="Design")),
        ]
        service = ResourceType.SERVICE

        in_first = await resolve(api, "Design", ResolveOptions(type=service, project_id="100"), cache=cache, org_id="42")
        in_second = await resolve(api, "Design", ResolveOptions(type=service, project_id="200"), cache=cache, org_id="42")
        again = await resolve(api, "Design", ResolveOptions(type=service, project_id="100"), cache=cache, org_id="42")

        assert in_first[0].id == "1"
        assert in_second[0].id == "2"
        assert again[0].id == "1"
        assert api.get_services.await_count == 2

    @pytest.mark.asyncio
    async def test_multiple_matches_not_stored(self, api, memory_cache):
        api.get_companies.return_value = page(row(1, name="Acme Corp"), row(2, name="Acme Labs"))

        await resolve(api, "Acme", ResolveOptions(type=ResourceType.COMPANY), cache=memory_cache)
        await resolve(api, "Acme", ResolveOptions(type=ResourceType.COMPANY, first=True), cache=memory_cache)

        assert memory_cache.sets == []

    @pytest.mark.asyncio
    async def test_numeric_ids_bypass_cache(self, api, memory_cache):
        await resolve(api, "123", cache=memory_cache)

        assert memory_cache.gets == []
        assert memory_cache.sets == []

    @pytest.mark.asyncio
    async def test_broken_cache_does_not_change_result(self, api):
        api.get_people.return_value = page(row(500521, first_name="Jane", last_name="Doe"))

        with_cache = await resolve(api, "jane@acme.test", cache=BrokenCache())
        without_cache = await resolve(api, "jane@acme.test")

        assert with_cache == without_cache

    @pytest.mark.asyncio
    async def test_sqlite_cache_end_to_end(self, api, tmp_path: Path):
        cache = ResolutionCache(Database(tmp_path / "cache.db"))
        api.get_projects.return_value = page(row(777, name="Website"))

        await resolve(api, "PRJ-123", cache=cache, org_id="42")
        result = await resolve(api, "prj-123", cache=cache, org_id="42")

        assert result[0].id == "777"
        assert result[0].label == "Website"
        api.get_projects.assert_awaited_once()

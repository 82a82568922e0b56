"""Tests for MCP server tools."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from productive_pm import mcp_server
from productive_pm.api_client import ProductiveApiError
from productive_pm.mcp_server import (
    check_auth,
    detect_resource_type,
    resolve,
    resolve_filters,
)
from productive_pm.resolver import create_resource_resolver

from conftest import page, row


@pytest.fixture
def ctx():
    context = Mock()
    context.session.list_roots = AsyncMock(return_value=Mock(roots=[]))
    return context


@pytest.fixture(autouse=True)
def reset_roots(monkeypatch):
    monkeypatch.setattr(mcp_server, "_client_cwd", None)
    monkeypatch.setattr(mcp_server, "_roots_initialized", False)


class TestResolve:
    """Tests for the resolve MCP tool."""

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_returns_matches(self, mock_get_resolver, ctx, api):
        api.get_people.return_value = page(row(500521, first_name="Jane", last_name="Doe"))
        mock_get_resolver.return_value = (create_resource_resolver(api), None)

        result = await resolve(ctx, "jane@acme.test", format="json")

        assert result["format"] == "json"
        assert result["content"] == {
            "query": "jane@acme.test",
            "matches": [{
                "id": "500521",
                "type": "person",
                "label": "Jane Doe",
                "query": "jane@acme.test",
                "exact": True,
            }],
            "exact": True,
        }

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_multiple_matches_not_exact(self, mock_get_resolver, ctx, api):
        api.get_companies.return_value = page(row(1, name="Acme Corp"), row(2, name="Acme Labs"))
        mock_get_resolver.return_value = (create_resource_resolver(api), None)

        result = await resolve(ctx, "Acme", type="company", format="json")

        assert len(result["content"]["matches"]) == 2
        assert result["content"]["exact"] is False

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_resolve_error_payload(self, mock_get_resolver, ctx, api):
        mock_get_resolver.return_value = (create_resource_resolver(api), None)

        result = await resolve(ctx, "Acme", format="json")

        assert result["content"] == {
            "error": "ResolveError",
            "message": 'Cannot determine resource type for "Acme". Specify a type.',
            "query": "Acme",
        }

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_api_error_payload(self, mock_get_resolver, ctx, api):
        api.get_people.side_effect = ProductiveApiError("Unauthorized", 401)
        mock_get_resolver.return_value = (create_resource_resolver(api), None)

        result = await resolve(ctx, "jane@acme.test", format="json")

        assert result["content"]["error"] == "api_error"
        assert result["content"]["status_code"] == 401

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_auth_error_passthrough(self, mock_get_resolver, ctx):
        mock_get_resolver.return_value = (None, {"error": "authentication_required", "message": "no token"})

        result = await resolve(ctx, "jane@acme.test", format="json")

        assert result["content"]["error"] == "authentication_required"


class TestResolveFilters:
    """Tests for the resolve_filters MCP tool."""

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_resolves_and_keeps(self, mock_get_resolver, ctx, api):
        api.get_people.return_value = page(row(5, first_name="Jane", last_name="Doe"))
        mock_get_resolver.return_value = (create_resource_resolver(api), None)

        result = await resolve_filters(
            ctx,
            {"assignee_id": "jane@acme.test", "project_id": "PRJ-404"},
            format="json",
        )

        content = result["content"]
        assert content["resolved"] == {"assignee_id": "5", "project_id": "PRJ-404"}
        assert list(content["metadata"]) == ["assignee_id"]
        assert content["did_resolve"] is True


class TestDetectResourceType:
    """Tests for the detect_resource_type MCP tool."""

    def test_detects(self):
        result = detect_resource_type("PRJ-12", format="json")

        assert result["content"]["detection"]["type"] == "project"

    def test_no_detection(self):
        result = detect_resource_type("Acme", format="json")

        assert result["content"] == {"query": "Acme", "detection": None}


class TestCheckAuth:
    """Tests for the check_auth MCP tool."""

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_authenticated(self, mock_get_resolver, ctx, api):
        api.get_organization_memberships = AsyncMock(return_value=page())
        mock_get_resolver.return_value = (create_resource_resolver(api, org_id="42"), None)

        result = await check_auth(ctx, format="json")

        assert result["content"] == {"authenticated": True, "organization_id": "42"}

    @pytest.mark.asyncio
    @patch("productive_pm.mcp_server._get_resolver_safe")
    async def test_rejected_token(self, mock_get_resolver, ctx, api):
        api.get_organization_memberships = AsyncMock(side_effect=ProductiveApiError("Invalid token", 401))
        mock_get_resolver.return_value = (create_resource_resolver(api, org_id="42"), None)

        result = await check_auth(ctx, format="json")

        assert result["content"]["authenticated"] is False
        assert result["content"]["status_code"] == 401


class TestResolverSafe:
    """Tests for _get_resolver_safe."""

    def test_missing_token(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr("productive_pm.pm_config.USER_CONFIG_FILE", tmp_path / "none.json")
        monkeypatch.delenv("PRODUCTIVE_API_TOKEN", raising=False)

        resolver, error = mcp_server._get_resolver_safe(str(tmp_path))

        assert resolver is None
        assert error["error"] == "authentication_required"
        assert error["suggestions"]


class TestRoots:
    """Tests for client workspace detection."""

    @pytest.mark.asyncio
    async def test_uses_first_root(self, ctx):
        ctx.session.list_roots.return_value = Mock(roots=[Mock(uri="file:///work/my%20project")])

        await mcp_server._ensure_roots_initialized(ctx)

        assert mcp_server._get_effective_path(None) == Path("/work/my project")
        assert mcp_server._get_effective_path("/other") == Path("/other")

    @pytest.mark.asyncio
    async def test_list_roots_failure(self, ctx):
        ctx.session.list_roots.side_effect = RuntimeError("unsupported")

        await mcp_server._ensure_roots_initialized(ctx)

        assert mcp_server._get_effective_path(None) is None
        assert mcp_server._roots_initialized is True

"""Tests for CLI commands."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from productive_pm.cli import app
from productive_pm.resolver import create_resource_resolver

from conftest import page, row

runner = CliRunner()


@pytest.fixture
def bound_resolver(api):
    with patch("productive_pm.cli.get_resolver_for_path") as mock_get:
        mock_get.return_value = (create_resource_resolver(api), None)
        yield api


class TestDetectCommand:
    """Tests for the detect command."""

    def test_detects_email(self):
        result = runner.invoke(app, ["detect", "jane@acme.test"])

        assert result.exit_code == 0
        assert "person" in result.output
        assert "email" in result.output

    def test_no_pattern(self):
        result = runner.invoke(app, ["detect", "Acme"])

        assert result.exit_code == 0
        assert "No pattern detected" in result.output

    def test_json_output(self):
        result = runner.invoke(app, ["detect", "D-45", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["detection"]["type"] == "deal"


class TestResolveCommand:
    """Tests for the resolve command."""

    def test_single_match(self, bound_resolver):
        bound_resolver.get_people.return_value = page(row(500521, first_name="Jane", last_name="Doe"))

        result = runner.invoke(app, ["resolve", "jane@acme.test"])

        assert result.exit_code == 0
        assert "500521" in result.output
        assert "Jane Doe" in result.output

    def test_quiet_prints_id_only(self, bound_resolver):
        bound_resolver.get_projects.return_value = page(row(777, name="Website"))

        result = runner.invoke(app, ["resolve", "PRJ-123", "--quiet"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "777"

    def test_multiple_matches_listed(self, bound_resolver):
        bound_resolver.get_companies.return_value = page(row(1, name="Acme Corp"), row(2, name="Acme Labs"))

        result = runner.invoke(app, ["resolve", "Acme", "--type", "company"])

        assert result.exit_code == 0
        assert 'Found 2 matches for "Acme"' in result.output
        assert "Acme Labs" in result.output

    def test_quiet_with_multiple_matches_fails(self, bound_resolver):
        bound_resolver.get_companies.return_value = page(row(1, name="Acme Corp"), row(2, name="Acme Labs"))

        result = runner.invoke(app, ["resolve", "Acme", "--type", "company", "--quiet"])

        assert result.exit_code == 1
        assert "Did you mean" in result.output

    def test_error_as_json(self, bound_resolver):
        result = runner.invoke(app, ["resolve", "Acme", "--format", "json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {
            "error": "ResolveError",
            "message": 'Cannot determine resource type for "Acme". Specify a type.',
            "query": "Acme",
        }

    def test_numeric_id(self, bound_resolver):
        result = runner.invoke(app, ["resolve", "12345", "--quiet"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "12345"
        bound_resolver.get_projects.assert_not_awaited()


class TestFiltersCommand:
    """Tests for the filters command."""

    def test_resolves_filters(self, bound_resolver):
        bound_resolver.get_people.return_value = page(row(5, first_name="Jane", last_name="Doe"))

        result = runner.invoke(
            app,
            ["filters", "assignee_id=jane@acme.test", "status=open", "--format", "json"],
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["resolved"] == {"assignee_id": "5", "status": "open"}

    def test_bad_pair(self, bound_resolver):
        result = runner.invoke(app, ["filters", "assignee_id"])

        assert result.exit_code != 0

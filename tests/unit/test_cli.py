"""Unit tests for the CLI commands."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from autofill.cli import app
from autofill.integrations.claude.client import ResilientApiClient
from autofill.integrations.langfuse.tracing import TracingState, get_langfuse

runner = CliRunner()

TEST_API_KEY = "sk-ant-REDACTED"


@pytest.fixture
def page_file(tmp_path, application_html):
    path = tmp_path / "application.html"
    path.write_text(application_html, encoding="utf-8")
    return path


@pytest.fixture
def profile_file(tmp_path, sample_profile):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(sample_profile), encoding="utf-8")
    return path


class TestAnalyzeCommand:
    """Tests for `autofill analyze`."""

    def test_json_output(self, page_file):
        result = runner.invoke(app, ["analyze", str(page_file), "--json"])

        assert result.exit_code == 0
        assert '"full_name"' in result.output
        assert '"jobPosting"' in result.output

    def test_missing_page(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "missing.html")])

        assert result.exit_code == 1
        assert "Page file not found" in result.output

    def test_page_without_form(self, tmp_path):
        path = tmp_path / "blog.html"
        path.write_text("<html><body><p>Just a blog post</p></body></html>", encoding="utf-8")

        result = runner.invoke(app, ["analyze", str(path)])

        assert result.exit_code == 1
        assert "No application forms found" in result.output


class TestFillCommand:
    """Tests for `autofill fill`."""

    def test_fill_writes_output(
        self, page_file, profile_file, tmp_path, mock_claude_client, mock_anthropic_response, fills_json
    ):
        mock_client, factory = mock_claude_client
        mock_client.messages.create.return_value = mock_anthropic_response(fills_json)
        output = tmp_path / "filled.html"

        with patch("autofill.cli.ResilientApiClient", lambda: ResilientApiClient(client_factory=factory)):
            result = runner.invoke(
                app,
                [
                    "fill",
                    str(page_file),
                    "--profile",
                    str(profile_file),
                    "--output",
                    str(output),
                    "--url",
                    "https://jobs.example.com/acme/apply",
                    "--api-key",
                    TEST_API_KEY,
                ],
            )

        assert result.exit_code == 0, result.output
        assert "12" in result.output
        html = output.read_text(encoding="utf-8")
        assert 'value="Jane Doe"' in html
        assert factory.call_args.args[0] == TEST_API_KEY

    def test_invalid_profile(self, page_file, tmp_path):
        profile = tmp_path / "profile.json"
        profile.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["fill", str(page_file), "--profile", str(profile)])

        assert result.exit_code == 1
        assert "Profile is not valid JSON" in result.output

    def test_missing_key(self, page_file, profile_file, monkeypatch):
        monkeypatch.setattr("autofill.storage.settings.anthropic_api_key", None)

        result = runner.invoke(app, ["fill", str(page_file), "--profile", str(profile_file)])

        assert result.exit_code == 1
        assert "API key not configured" in result.output

    def test_banner_shows_tracing_disabled(self, page_file, profile_file, monkeypatch):
        monkeypatch.setattr("autofill.storage.settings.anthropic_api_key", None)
        monkeypatch.setattr("autofill.integrations.langfuse.tracing.settings.langfuse_secret_key", None)
        monkeypatch.setattr("autofill.integrations.langfuse.tracing.settings.langfuse_public_key", None)
        get_langfuse.cache_clear()

        with patch("autofill.integrations.langfuse.tracing.langfuse_context"):
            result = runner.invoke(app, ["fill", str(page_file), "--profile", str(profile_file)])

        assert "Tracing: disabled" in result.output
        get_langfuse.cache_clear()

    def test_banner_shows_tracing_enabled(self, page_file, profile_file, monkeypatch):
        monkeypatch.setattr("autofill.storage.settings.anthropic_api_key", None)

        with (
            patch("autofill.cli.init_langfuse", return_value=TracingState.ENABLED),
            patch("autofill.cli.flush_langfuse") as flush,
        ):
            result = runner.invoke(app, ["fill", str(page_file), "--profile", str(profile_file)])

        assert "Tracing: enabled" in result.output
        flush.assert_called_once()

"""Tests for the CLI commands and display rendering.

Covers: Click command registration, ``complete`` (panel, JSON, failure
exit code), ``providers``, ``config path``/``config show``, and the rich
renderers writing to a captured console.
"""

from __future__ import annotations

import json
from io import StringIO

import pytest
from click.testing import CliRunner
from rich.console import Console

import llm_dispatch.cli as cli_mod
import llm_dispatch.display as display_mod
from llm_dispatch.cli import main
from llm_dispatch.config import Settings
from llm_dispatch.display import render_availability, render_config_show, render_error, render_result
from llm_dispatch.exceptions import AllProvidersExhaustedError, ProviderCallError
from llm_dispatch.models import CompletionResult
from llm_dispatch.service import CompletionService
from llm_dispatch.types import AttemptRecord, DispatchConfig, Usage
from tests.conftest import FakeProvider, RecordingSleep


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> StringIO:
    """Swap the module console for one writing to a buffer."""
    buf = StringIO()
    monkeypatch.setattr(display_mod, "console", Console(file=buf, force_terminal=True, width=120))
    return buf


@pytest.fixture
def fake_service(monkeypatch: pytest.MonkeyPatch) -> CompletionService:
    service = CompletionService(
        DispatchConfig(default_provider="A", fallback_order=("B",), retry_attempts=2),
        sleep=RecordingSleep(),
    )
    service.register_provider(FakeProvider("A", failures=2))
    service.register_provider(FakeProvider("B", available=False))
    monkeypatch.setattr(cli_mod, "_build_service", lambda: service)
    return service


# ---------------------------------------------------------------------------
# Click command registration
# ---------------------------------------------------------------------------


class TestCommandRegistration:
    """Groups and subcommands are registered correctly."""

    def test_top_level_help(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for name in ("complete", "providers", "config"):
            assert name in result.output

    def test_config_subcommands(self) -> None:
        result = CliRunner().invoke(main, ["config", "--help"])
        assert result.exit_code == 0
        assert "show" in result.output
        assert "path" in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "llm-dispatch" in result.output


# ---------------------------------------------------------------------------
# complete / providers
# ---------------------------------------------------------------------------


class TestCompleteCommand:
    """complete runs one dispatch through the service."""

    def test_json_output(self, fake_service: CompletionService) -> None:
        fake_service.register_provider(FakeProvider("A"))
        result = CliRunner().invoke(main, ["complete", "hi", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["provider"] == "A"
        assert data["content"] == "A says hi"
        assert data["usage"] == {"promptTokens": 3, "completionTokens": 4, "totalTokens": 7}

    def test_exhaustion_exits_nonzero(self, fake_service: CompletionService, captured: StringIO) -> None:
        result = CliRunner().invoke(main, ["complete", "hi", "--system", "Be terse."])
        assert result.exit_code == 1
        output = captured.getvalue()
        assert "All providers exhausted" in output
        assert "unavailable" in output

    def test_unknown_provider_exits_nonzero(self, fake_service: CompletionService, captured: StringIO) -> None:
        result = CliRunner().invoke(main, ["complete", "hi", "--provider", "Z"])
        assert result.exit_code == 1
        assert "Provider Z not found" in captured.getvalue()

    def test_rejects_bad_temperature(self) -> None:
        result = CliRunner().invoke(main, ["complete", "hi", "--temperature", "5"])
        assert result.exit_code == 2


class TestProvidersCommand:
    """providers renders the availability table."""

    def test_lists_status_and_roles(self, fake_service: CompletionService, captured: StringIO) -> None:
        result = CliRunner().invoke(main, ["providers"])
        assert result.exit_code == 0
        output = captured.getvalue()
        assert "default" in output
        assert "fallback #1" in output
        assert "unavailable" in output


class TestConfigCommands:
    """config path / config show."""

    def test_config_path_prints_path(self, clean_env) -> None:
        result = CliRunner().invoke(main, ["config", "path"])
        assert result.exit_code == 0
        assert str(clean_env) in result.output

    def test_config_show_masks_env_key(self, monkeypatch: pytest.MonkeyPatch, captured: StringIO) -> None:
        full_key = "sk-proj-abcdefghijklmnopqrstuvwxyz1234"
        monkeypatch.setenv("OPENAI_API_KEY", full_key)
        result = CliRunner().invoke(main, ["config", "show"])
        assert result.exit_code == 0
        output = captured.getvalue()
        assert full_key not in output
        assert "sk-pro" in output
        assert "1234" in output
        assert "env" in output

    def test_config_show_invalid_file(self, clean_env, captured: StringIO) -> None:
        clean_env.write_text("not = [valid")
        result = CliRunner().invoke(main, ["config", "show"])
        assert result.exit_code == 1
        assert "Invalid TOML" in captured.getvalue()


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


class TestRenderers:
    """Display functions write to the module console."""

    def test_render_result_shows_provider_and_usage(self, captured: StringIO) -> None:
        result = CompletionResult(
            content="The answer is 4.",
            provider="claude",
            model="claude-3-5-sonnet",
            usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )
        render_result(result)
        output = captured.getvalue()
        assert "The answer is 4." in output
        assert "claude" in output
        assert "15" in output

    def test_render_result_trace(self, captured: StringIO) -> None:
        result = CompletionResult(
            content="ok",
            provider="ollama",
            attempts=[
                AttemptRecord("openai", "primary", 1, "error", "HTTP 503: down"),
                AttemptRecord("ollama", "fallback", 1, "success"),
            ],
        )
        render_result(result, show_trace=True)
        output = captured.getvalue()
        assert "HTTP 503: down" in output
        assert "fallback" in output

    def test_render_result_escapes_markup(self, captured: StringIO) -> None:
        render_result(CompletionResult(content="use [bold] tags", provider="openai"))
        assert "[bold]" in captured.getvalue()

    def test_render_error_with_trace(self, captured: StringIO) -> None:
        cause = ProviderCallError("openai", "HTTP 401: bad key", status_code=401)
        exc = AllProvidersExhaustedError(cause, [AttemptRecord("openai", "primary", 1, "error", str(cause))])
        render_error(exc)
        output = captured.getvalue()
        assert "HTTP 401: bad key" in output
        assert "primary" in output

    def test_render_availability_empty(self, captured: StringIO) -> None:
        render_availability({})
        assert "No providers registered" in captured.getvalue()

    def test_render_config_show_not_configured(self, captured: StringIO) -> None:
        render_config_show(Settings())
        output = captured.getvalue()
        assert "not configured" in output.lower()
        assert "ollama, claude, openai" in output
        assert "1000ms" in output

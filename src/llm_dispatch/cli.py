"""CLI entry point for llm-dispatch.

Provides the ``llm-dispatch`` command with subcommands for running a
single completion through the dispatch chain, checking provider status,
and inspecting configuration.
"""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.logging import RichHandler

from llm_dispatch import __version__
from llm_dispatch.config import load_config, resolve_config_path
from llm_dispatch.display import (
    console,
    render_availability,
    render_config_show,
    render_error,
    render_result,
)
from llm_dispatch.exceptions import DispatchError
from llm_dispatch.service import CompletionService
from llm_dispatch.types import GenerationOptions, Message, Role


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _build_service() -> CompletionService:
    try:
        return CompletionService.from_settings(load_config())
    except DispatchError as exc:
        render_error(exc)
        raise SystemExit(1) from exc


@click.group()
@click.version_option(version=__version__, prog_name="llm-dispatch")
@click.option("-v", "--verbose", is_flag=True, help="Log every attempt and fallback.")
def main(verbose: bool) -> None:
    """Dispatch chat completions across LLM providers.

    Sends a conversation to the configured default provider, retries it
    with linear backoff, and walks the fallback chain when it stays down.
    """
    _configure_logging(verbose)


@main.command()
@click.argument("prompt")
@click.option("--system", "system_prompt", default=None, help="System message sent first.")
@click.option("--provider", default=None, help="Provider name, overriding the default.")
@click.option("--model", default=None, help="Vendor model identifier.")
@click.option("--temperature", default=None, type=click.FloatRange(0.0, 2.0), help="Sampling temperature.")
@click.option("--max-tokens", default=None, type=click.IntRange(min=1), help="Maximum tokens to generate.")
@click.option("--timeout", default=None, type=click.FloatRange(min=0, min_open=True), help="Per-attempt timeout in seconds.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.option("--trace", is_flag=True, help="Show every attempt made.")
def complete(
    prompt: str,
    system_prompt: str | None,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    timeout: float | None,
    as_json: bool,
    trace: bool,
) -> None:
    """Run one completion for PROMPT.

    Args:
        prompt: The user message.
        system_prompt: Optional system message.
        provider: Explicit provider name.
        model: Vendor model identifier.
        temperature: Sampling temperature.
        max_tokens: Upper bound on generated tokens.
        timeout: Per-attempt timeout in seconds.
        as_json: Emit ``CompletionResult.to_dict()`` instead of a panel.
        trace: Show the attempt trace.
    """
    service = _build_service()
    messages: list[Message] = []
    if system_prompt:
        messages.append(Message(Role.SYSTEM, system_prompt))
    messages.append(Message(Role.USER, prompt))
    options = GenerationOptions(
        provider=provider,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
    )

    try:
        result = asyncio.run(service.complete(messages, options))
    except DispatchError as exc:
        render_error(exc)
        raise SystemExit(1) from exc

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_result(result, show_trace=trace)


@main.command()
def providers() -> None:
    """List registered providers and probe their availability."""
    service = _build_service()
    availability = asyncio.run(service.check_availability())
    render_availability(
        availability,
        default_provider=service.config.default_provider,
        fallback_order=service.config.fallback_order,
    )


@main.group()
def config() -> None:
    """Inspect llm-dispatch configuration."""


@config.command("show")
def config_show() -> None:
    """Show the effective configuration (keys masked)."""
    try:
        settings = load_config()
    except DispatchError as exc:
        render_error(exc)
        raise SystemExit(1) from exc
    render_config_show(settings)


@config.command("path")
def config_path() -> None:
    """Print the config file location."""
    click.echo(str(resolve_config_path()))


if __name__ == "__main__":
    main()

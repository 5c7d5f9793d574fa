"""Rich terminal rendering for the CLI.

All output goes through the module-level ``console`` so tests can swap
it for a ``Console`` writing to a buffer.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from llm_dispatch.config import PROVIDER_KEY_ENV_VARS, Settings, mask_key
from llm_dispatch.exceptions import AllProvidersExhaustedError, DispatchError
from llm_dispatch.models import CompletionResult
from llm_dispatch.types import AttemptRecord

console = Console()

_OUTCOME_STYLES = {
    "success": "green",
    "unavailable": "yellow",
    "error": "red",
}


def render_result(result: CompletionResult, *, show_trace: bool = False) -> None:
    """Render a completion in a panel titled with provider and model."""
    title = result.provider if not result.model else f"{result.provider} · {result.model}"
    console.print(Panel(escape(result.content) or "[dim](empty response)[/dim]", title=escape(title)))

    if result.usage is not None:
        console.print(
            f"[dim]tokens: {result.usage.prompt_tokens} prompt + "
            f"{result.usage.completion_tokens} completion = "
            f"{result.usage.total_tokens}[/dim]"
        )

    if show_trace and result.attempts:
        _render_trace(result.attempts)


def render_error(exc: DispatchError) -> None:
    """Render a terminal dispatch failure, with the attempt trace if any."""
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    if isinstance(exc, AllProvidersExhaustedError) and exc.attempts:
        _render_trace(exc.attempts)


def _render_trace(attempts: list[AttemptRecord]) -> None:
    table = Table(title="Attempts", show_header=True, header_style="bold")
    table.add_column("Provider")
    table.add_column("Phase")
    table.add_column("#", justify="right")
    table.add_column("Outcome")
    table.add_column("Detail")

    for record in attempts:
        style = _OUTCOME_STYLES.get(record.outcome, "")
        table.add_row(
            record.provider,
            record.phase,
            str(record.attempt),
            f"[{style}]{record.outcome}[/{style}]" if style else record.outcome,
            escape(record.error) if record.error else "—",
        )
    console.print(table)


def render_availability(
    availability: dict[str, bool],
    *,
    default_provider: str | None = None,
    fallback_order: tuple[str, ...] | list[str] = (),
) -> None:
    """Render registered providers with liveness and chain position."""
    if not availability:
        console.print("[yellow]No providers registered.[/yellow]")
        return

    table = Table(title="Providers", show_header=True, header_style="bold")
    table.add_column("Provider")
    table.add_column("Status")
    table.add_column("Role")

    for name, alive in availability.items():
        status = "[green]available[/green]" if alive else "[red]unavailable[/red]"
        if name == default_provider:
            role = "default"
        elif name in fallback_order:
            role = f"fallback #{list(fallback_order).index(name) + 1}"
        else:
            role = "—"
        table.add_row(name, status, role)
    console.print(table)


def render_config_show(settings: Settings) -> None:
    """Render the effective configuration with API keys masked."""
    console.print(f"[bold]Config file:[/bold] {settings.config_path}")

    keys = Table(title="API keys", show_header=True, header_style="bold")
    keys.add_column("Vendor")
    keys.add_column("Key")
    keys.add_column("Source")
    for vendor in PROVIDER_KEY_ENV_VARS:
        key = settings.get_provider_key(vendor)
        if key:
            keys.add_row(vendor, mask_key(key), settings.key_source(vendor) or "—")
        else:
            keys.add_row(vendor, "[dim]not configured[/dim]", "—")
    console.print(keys)

    if settings.endpoints:
        endpoints = Table(title="Endpoints", show_header=True, header_style="bold")
        endpoints.add_column("Provider")
        endpoints.add_column("Base URL")
        for name, url in settings.endpoints.items():
            endpoints.add_row(name, url)
        console.print(endpoints)

    timeout = f"{settings.request_timeout}s" if settings.request_timeout else "none"
    console.print(f"[bold]Default provider:[/bold] {settings.default_provider or 'none'}")
    console.print(f"[bold]Fallback order:[/bold] {', '.join(settings.fallback_order) or 'none'}")
    console.print(f"[bold]Retry attempts:[/bold] {settings.retry_attempts}")
    console.print(f"[bold]Retry delay:[/bold] {settings.retry_delay_ms}ms")
    console.print(f"[bold]Request timeout:[/bold] {timeout}")

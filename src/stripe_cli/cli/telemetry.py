"""Telemetry CLI commands.

- status: Show whether telemetry is enabled and how it is configured
- send: Send a single event (useful for checking connectivity)
"""

from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stripe_cli.telemetry.cancellation import CancellationToken
from stripe_cli.telemetry.commands import descriptor_from_click
from stripe_cli.telemetry.config import TELEMETRY_OPTOUT_ENV, TelemetrySettings
from stripe_cli.telemetry.context import get_event_context
from stripe_cli.telemetry.errors import TelemetryConfigError
from stripe_cli.telemetry.sender import EventSender, SendResult

console = Console()


def _load_settings() -> TelemetrySettings:
    try:
        return TelemetrySettings.from_env()
    except TelemetryConfigError as e:
        raise click.ClickException(str(e))


@click.group()
def telemetry():
    """Manage telemetry and anonymous usage analytics."""
    pass


@telemetry.command("status")
def telemetry_status():
    """
    Show current telemetry status and what data is collected.

    Example:
        stripe-telemetry telemetry status
    """
    from stripe_cli.telemetry.config import get_telemetry_status

    try:
        status_info = get_telemetry_status()
    except TelemetryConfigError as e:
        raise click.ClickException(str(e))

    if status_info["enabled"]:
        status_text = "[bold green]Enabled[/bold green]"
        status_emoji = "+"
    else:
        status_text = "[bold red]Disabled[/bold red]"
        status_emoji = "x"

    console.print()
    console.print(
        Panel(
            f"{status_emoji} Telemetry is {status_text}",
            title="Telemetry Status",
            border_style="green" if status_info["enabled"] else "red",
        )
    )

    console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Status", "Enabled" if status_info["enabled"] else "Disabled")
    if status_info["disabled_reason"]:
        table.add_row("Disabled by", status_info["disabled_reason"])
    table.add_row("Endpoint", status_info["endpoint"])
    table.add_row("Pre-send delay", f"{status_info['pre_send_delay']:g}s")
    table.add_row("Verbose transport", "Yes" if status_info["verbose"] else "No")

    console.print(table)

    console.print()
    console.print("[bold]What we collect:[/bold]")
    console.print("  - Command path (e.g., 'stripe customers create')")
    console.print("  - Whether the command was generated from the API description")
    console.print("  - CLI version and operating system")
    console.print("  - Account ID and live/test mode")
    console.print()
    console.print(f"[dim]Set {TELEMETRY_OPTOUT_ENV}=1 to opt out[/dim]")


def _print_result(result: SendResult) -> None:
    if result.sent:
        console.print(
            f"[green]Sent telemetry event[/green] [dim](HTTP {result.response.status_code})[/dim]"
        )
    elif result.skipped:
        console.print(f"[yellow]Skipped: telemetry disabled by {TELEMETRY_OPTOUT_ENV}[/yellow]")
    else:
        console.print(f"[red]Telemetry event not delivered:[/red] {result.error}")


@telemetry.command("send")
@click.argument("event_name")
@click.argument("event_value")
@click.option("--verbose", is_flag=True, default=False, help="Log the HTTP exchange")
@click.option("--no-delay", is_flag=True, default=False, help="Skip the pre-send delay")
@click.option("--timeout", type=float, default=None, help="Give up after N seconds")
@click.pass_context
def send(
    ctx: click.Context,
    event_name: str,
    event_value: str,
    verbose: bool,
    no_delay: bool,
    timeout: float | None,
):
    """
    Send a single telemetry event.

    A failed delivery is reported but does not change the exit code.

    Example:
        stripe-telemetry telemetry send purchase 42 --no-delay
    """
    settings = _load_settings()
    updates: dict = {}
    if verbose:
        updates["verbose"] = True
    if no_delay:
        updates["pre_send_delay"] = 0.0
    settings = settings.model_copy(update=updates)

    get_event_context().bind_command(descriptor_from_click(ctx))
    cancel = CancellationToken(timeout=timeout) if timeout is not None else None

    with EventSender(settings=settings) as sender:
        result = sender.send_event(event_name, event_value, cancel=cancel)

    _print_result(result)

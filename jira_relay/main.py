"""jira-relay CLI — all commands."""

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from jira_relay.dispatcher import build_dispatcher
from jira_relay.events import EventDecodeError, load_event
from jira_relay.log import configure_logging
from jira_relay.models import LifecycleEvent
from jira_relay.renderer import build_ticket
from jira_relay.server import create_app
from jira_relay.settings import get_settings, load_echo_settings

app = typer.Typer(help="jira-relay: Keptn lifecycle events → Jira tickets (+ Dynatrace echo)", no_args_is_help=True)

ConfigOpt = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="TOML defaults file (default ~/.config/jira-relay/config.toml)"),
]

EventFileArg = Annotated[Path, typer.Argument(help="CloudEvent JSON file (structured mode)")]


def _read_event(event_file: Path) -> LifecycleEvent:
    try:
        event = load_event(event_file.read_text())
    except OSError as exc:
        rprint(f"[red]Could not read {event_file}: {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except EventDecodeError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)
    if event is None:
        rprint("[red]Not an evaluation.finished or remediation.finished event.[/red]")
        raise typer.Exit(1)
    return event


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    port: Annotated[int, typer.Option("--port", "-p", envvar="RCV_PORT", help="Port to listen on")] = 8080,
    path: Annotated[str, typer.Option("--path", envvar="RCV_PATH", help="Path CloudEvents are posted to")] = "/",
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = "0.0.0.0",
    config: ConfigOpt = None,
) -> None:
    """Listen for Keptn CloudEvents and file tickets."""
    settings = get_settings(config)
    configure_logging(settings.debug)
    rprint(f"Starting jira-relay on port {port}, path {path}")
    uvicorn.run(create_app(settings, path=path), host=host, port=port, log_level="debug" if settings.debug else "info")


@app.command("preview")
def preview(event_file: EventFileArg, config: ConfigOpt = None) -> None:
    """Show the ticket an event would produce, without calling any API."""
    settings = get_settings(config)
    event = _read_event(event_file)
    ticket = build_ticket(event, settings.bridge_url)

    rprint(f"[bold]{escape(ticket.title)}[/bold]")
    rprint("")
    # plain echo: rich would parse Jira's [text|url] links as markup
    typer.echo(ticket.description)
    rprint("")
    rprint("[bold]Labels:[/bold]")
    for label in ticket.labels:
        typer.echo(f"  {label}")


@app.command("replay")
def replay(event_file: EventFileArg, config: ConfigOpt = None) -> None:
    """Dispatch one event from a file exactly as the server would."""
    settings = get_settings(config)
    configure_logging(settings.debug)
    event = _read_event(event_file)

    created = build_dispatcher(settings).handle(event)
    if created is None:
        rprint("[yellow]No ticket created.[/yellow] See log output above.")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] [bold]{created.identifier}[/bold] {escape(created.title)}")
    rprint(f"  {created.url}")


@app.command("config-show")
def config_show(config: ConfigOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(config)
    echo = load_echo_settings()

    def mask(val: str | None) -> str:
        if not val:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def show(val: str) -> str:
        return val or "[dim](not set)[/dim]"

    table = Table(title="jira-relay Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("JIRA_BASE_URL", show(settings.jira_base_url))
    table.add_row("JIRA_USERNAME", show(settings.jira_username))
    table.add_row(
        "JIRA_API_TOKEN",
        mask(settings.jira_api_token.get_secret_value() if settings.jira_api_token else None),
    )
    table.add_row("JIRA_ASSIGNEE_ID", show(settings.jira_assignee_id))
    table.add_row("JIRA_REPORTER_ID", show(settings.jira_reporter_id))
    table.add_row("JIRA_PROJECT_KEY", show(settings.jira_project_key))
    table.add_row("JIRA_ISSUE_TYPE", show(settings.jira_issue_type))
    table.add_row("JIRA_TICKET_FOR_PROBLEMS", str(settings.jira_ticket_for_problems))
    table.add_row("JIRA_TICKET_FOR_EVALUATIONS", str(settings.jira_ticket_for_evaluations))
    table.add_row("KEPTN_DOMAIN", show(settings.keptn_domain))
    table.add_row("Bridge URL", show(settings.bridge_url))
    table.add_row("SEND_EVENT", str(echo.send_event))
    table.add_row("DT_TENANT", show(echo.dt_tenant))
    table.add_row("DT_API_TOKEN", mask(echo.dt_api_token.get_secret_value() if echo.dt_api_token else None))
    table.add_row("DEBUG", str(settings.debug))

    rprint(table)

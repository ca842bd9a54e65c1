from typing import List, Optional
import typer
import asyncio
import logging
from typing_extensions import Annotated
from rich.console import Console
from rich.table import Table

from fixdesk.client.ticket_engine import TicketEngine
from fixdesk.domains import IntakeOutcome, TicketDraft, TicketPriority

# --- Basic Logging Configuration ---
logging.basicConfig(level=logging.WARNING, format="%(levelname)s:%(name)s:%(message)s")
# --- End Logging Configuration ---

app = typer.Typer()
console = Console()


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.INFO)


def _load_engine(config: str) -> TicketEngine:
    """Build the engine, turning configuration problems into a clean exit."""
    try:
        with console.status("[bold green]Initializing ticket engine...", spinner="dots"):
            return TicketEngine(config_path=config)
    except FileNotFoundError:
        console.print(
            f"[bold red]Error:[/bold red] Configuration file not found at '{config}'"
        )
        raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[bold red]Error loading configuration:[/bold red] {e}")
        raise typer.Exit(code=1)


def _print_outcome(outcome: IntakeOutcome) -> None:
    color = {"created": "green", "merged": "cyan", "spam": "yellow"}[outcome.status]
    console.print(f"[bold {color}]{outcome.message}[/bold {color}] ({outcome.ticket_id})")

    if outcome.classification == "fallback":
        console.print(f"[dim]Classification fallback: {outcome.fallback_reason}[/dim]")

    ticket = outcome.ticket
    if ticket:
        table = Table(show_header=False)
        table.add_row("Status", ticket.status.value)
        table.add_row("Category", ticket.category)
        table.add_row("Priority", ticket.priority.value)
        table.add_row("Assigned to", ticket.assigned_to or "-")
        if ticket.estimated_duration:
            table.add_row("Estimated duration", ticket.estimated_duration)
        if ticket.spam_metadata:
            table.add_row("Spam reason", ticket.spam_metadata.reason)
        console.print(table)

    assignment = outcome.assignment
    if assignment and assignment.assigned and assignment.technician:
        console.print(
            f"[bright_blue]Assigned:[/bright_blue] {assignment.technician.name} "
            f"via {assignment.method} ({assignment.reason})"
        )
    elif assignment:
        console.print(f"[yellow]Not assigned:[/yellow] {assignment.reason}")


@app.command()
def serve(
    config: Annotated[
        str, typer.Option(help="Path to the configuration JSON file.")
    ] = "config.json",
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8000,
    verbose: Annotated[bool, typer.Option(help="Log at INFO level.")] = False,
):
    """
    Serve the ticket engine HTTP API.
    """
    import uvicorn

    from fixdesk.api import create_app

    _set_verbose(verbose)
    engine = _load_engine(config)
    uvicorn.run(create_app(engine), host=host, port=port)


@app.command()
def triage(
    title: Annotated[str, typer.Option(help="Ticket title.")],
    description: Annotated[str, typer.Option(help="Ticket description.")],
    category: Annotated[str, typer.Option(help="Reporter-chosen category.")],
    location: Annotated[str, typer.Option(help="Location within the community.")],
    reported_by: Annotated[str, typer.Option(help="Reporter user ID.")],
    community_id: Annotated[str, typer.Option(help="Community ID.")],
    priority: Annotated[
        TicketPriority, typer.Option(help="Reporter priority.")
    ] = TicketPriority.AUTO,
    image: Annotated[
        Optional[List[str]], typer.Option(help="Image URL, may be repeated.")
    ] = None,
    auto_assign: Annotated[
        bool, typer.Option(help="Assign to the best technician.")
    ] = False,
    config: Annotated[
        str, typer.Option(help="Path to the configuration JSON file.")
    ] = "config.json",
    verbose: Annotated[bool, typer.Option(help="Log at INFO level.")] = False,
):
    """
    Submit one ticket through the intake pipeline and show the outcome.
    """
    _set_verbose(verbose)
    engine = _load_engine(config)

    draft = TicketDraft(
        title=title,
        description=description,
        category=category,
        location=location,
        reported_by=reported_by,
        community_id=community_id,
        priority=priority,
        images=image or [],
    )
    try:
        with console.status("[bold green]Triaging ticket...", spinner="dots"):
            outcome = asyncio.run(engine.submit_ticket(draft, auto_assign=auto_assign))
    except (ValueError, LookupError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    _print_outcome(outcome)


@app.command()
def stats(
    community_id: Annotated[
        Optional[str], typer.Option(help="Restrict to one community.")
    ] = None,
    config: Annotated[
        str, typer.Option(help="Path to the configuration JSON file.")
    ] = "config.json",
):
    """
    Show ticket counts by status.
    """
    engine = _load_engine(config)
    counts = engine.get_stats(community_id)

    table = Table(title="Tickets")
    table.add_column("Status")
    table.add_column("Count", justify="right")
    for name, value in counts.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


if __name__ == "__main__":
    app()

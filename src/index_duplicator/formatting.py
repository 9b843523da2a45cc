"""Human-readable output for migration runs.

Everything here only renders. Rendering problems never change the outcome of
a run.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from index_duplicator.alias_reconciler import AliasPlan
    from index_duplicator.errors import IndexDuplicatorError
    from index_duplicator.orchestrator import MigrationState


def pretty_json(value: Any) -> str:
    """Indent ``value`` as JSON; fall back to ``str`` for anything else."""
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            return value.decode(errors="replace") if isinstance(value, bytes) else value
    try:
        return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def summary_table(state: MigrationState) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", min_width=25)
    table.add_column("Value")

    status = "DRY RUN" if state.dry_run else ("SUCCESS" if state.succeeded else "FAILED")
    table.add_row("Status", status)
    table.add_row("Source Index", state.source)
    table.add_row("Target Index", state.destination)
    table.add_row("Alias Updated" if not state.dry_run else "Alias", state.alias)
    table.add_row("Phase Reached", state.phase.name)

    if state.copy_result is not None:
        r = state.copy_result
        table.add_row("Documents Copied", f"{r.copied:,} / {r.total:,}")
        table.add_row("Copy Took", f"{r.took:,} ms")
    if state.alias_plan is not None:
        removed = ", ".join(a.index for a in state.alias_plan.removals) or "-"
        table.add_row("Alias Removed From", removed)
        table.add_row("Alias Assigned To", state.alias_plan.destination)
    return table


def print_plan(plan: AliasPlan, console: Console | None = None) -> None:
    c = console or Console()
    table = Table(title=f"Alias actions for '{plan.alias}'")
    table.add_column("Action", style="cyan")
    table.add_column("Index")
    for action in plan.actions:
        style = "red" if action.kind == "remove" else "green"
        table.add_row(f"[{style}]{action.kind}[/{style}]", action.index)
    c.print(table)


def print_summary(state: MigrationState, console: Console | None = None) -> None:
    """Print the end-of-run summary."""
    c = console or Console()

    if state.dry_run:
        title = "Elasticsearch Index Operation (dry run)"
    else:
        title = "Elasticsearch Index Operation"
    c.print(Panel(summary_table(state), title=title, border_style="green"))

    if state.dry_run:
        if state.schema is not None:
            c.print("[bold]Settings to create with:[/bold]")
            c.print(pretty_json(state.schema.settings), markup=False)
        if state.alias_plan is not None:
            print_plan(state.alias_plan, c)
        return

    c.print(
        f"The alias '[cyan]{state.alias}[/cyan]' has been reassigned from "
        f"'[cyan]{state.source}[/cyan]' to '[cyan]{state.destination}[/cyan]'.\n"
        "All relevant data has been reindexed."
    )


def print_failure(
    error: IndexDuplicatorError,
    state: MigrationState | None = None,
    console: Console | None = None,
) -> None:
    """Print which phase failed and why."""
    c = console or Console()

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", min_width=25)
    table.add_column("Value")
    table.add_row("Error", type(error).__name__)
    if error.phase is not None:
        table.add_row("Failed During", str(error.phase))
    if error.index:
        table.add_row("Index", error.index)
    if error.alias:
        table.add_row("Alias", error.alias)
    table.add_row("Reason", escape(error.message))
    if state is not None:
        table.add_row("Last Completed Phase", state.phase.name)

    c.print(Panel(table, title="[red]Elasticsearch Index Operation Failed[/red]",
                  border_style="red"))

    result = getattr(error, "result", None)
    if result is not None and getattr(result, "failures", None):
        c.print("[yellow]Reindex failures:[/yellow]")
        c.print(pretty_json(result.failures[:10]), markup=False)

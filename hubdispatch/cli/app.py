"""Main Typer application — imports and registers all CLI commands.

Entry point: ``hubdispatch`` (configured via pyproject.toml [project.scripts]).
"""

from __future__ import annotations

import typer

from hubdispatch.cli.commands.demo import demo_cmd

app = typer.Typer(
    name="hubdispatch",
    help="hubdispatch: partitioned batch dispatcher for change-data-capture sinks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="demo", help="Run one dispatch cycle over synthetic records.")(demo_cmd)


@app.command(name="settings", help="Show the resolved dispatcher settings.")
def settings_cmd() -> None:
    """Print the settings read from HUBDISPATCH_* variables and .env."""
    from rich.console import Console
    from rich.table import Table

    from hubdispatch.config import DispatchSettings

    console = Console()
    try:
        current = DispatchSettings()
    except ValueError as e:
        console.print(f"[red]Invalid settings:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Dispatcher settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in current.model_dump().items():
        table.add_row(name, "" if value is None else str(value))
    table.add_row("routing_mode", current.routing_mode.kind)
    console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

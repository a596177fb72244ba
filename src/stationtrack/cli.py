"""Operator CLI for the station tracker."""

import typer
from rich.console import Console

from stationtrack import __version__
from stationtrack.commands import audit


console = Console()

app = typer.Typer(
    name="stationtrack",
    help="Operator tools for the station tracker.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(audit.app, name="audit")


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """Station tracker operator CLI."""
    if version:
        console.print(f"[bold cyan]stationtrack[/bold cyan] version {__version__}")
        raise typer.Exit()


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Courier CLI - Command-line interface for the delivery agent."""

import typer

from courier import __version__
from courier.cli_commands import (
    config_app,
    queue_app,
    run_command,
    status_command,
    sync_command,
)

app = typer.Typer(
    name="courier",
    help="Courier - offline-first message delivery agent.",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(queue_app, name="queue")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"courier-agent {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Courier - offline-first message delivery agent."""
    pass


app.command(name="run")(run_command)
app.command(name="status")(status_command)
app.command(name="sync")(sync_command)


if __name__ == "__main__":
    app()

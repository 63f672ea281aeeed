"""Configuration CLI commands."""

import json

import typer

from courier.config import get_settings

config_app = typer.Typer(
    name="config",
    help="Configuration management - view settings.",
    no_args_is_help=True,
)


@config_app.command()
def show(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show current configuration."""
    settings = get_settings()

    config_data = {
        "server_url": settings.server_url,
        "max_queue_size": settings.max_queue_size,
        "sync_interval": settings.sync_interval,
        "probe_interval": settings.probe_interval,
        "send_delay": settings.send_delay,
        "retry_attempts": settings.retry_attempts,
        "snapshot_max_age": settings.snapshot_max_age,
        "persist_queue": settings.persist_queue,
        "data_dir": str(settings.data_path),
        "log_level": settings.log_level,
    }

    if output_json:
        typer.echo(json.dumps(config_data))
        return

    typer.echo("Courier Configuration")
    typer.echo("---------------------")
    for key, value in config_data.items():
        typer.echo(f"{key}: {value}")
    typer.echo("")
    typer.echo("Override any value with COURIER_<NAME> environment variables.")

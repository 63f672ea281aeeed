"""Status command for Courier CLI."""

import json
from datetime import datetime, timezone

import typer

from courier.cli_commands.runtime import build_service, get_running_pid
from courier.config import get_settings


def _format_time_ago(timestamp: float | None) -> str:
    """Format an epoch timestamp as 'X minutes ago' style string."""
    if timestamp is None:
        return "Never"

    seconds = int(datetime.now(timezone.utc).timestamp() - timestamp)
    if seconds < 60:
        return f"{seconds} seconds ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def status_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show agent status.

    Displays whether the agent is running and the state of the
    persisted delivery queue.
    """
    settings = get_settings()
    pid = get_running_pid(settings)

    service, store = build_service(settings)
    try:
        service.load()
        status = service.queue_status()
    finally:
        store.close()

    stats = status["stats"]
    status_data = {
        "running": pid is not None,
        "pid": pid,
        "queue_size": status["queue_size"],
        "oldest_message": status["oldest_message"],
        "stats": stats,
    }

    if output_json:
        typer.echo(json.dumps(status_data))
        return

    typer.echo("")
    typer.echo("Courier Agent Status")
    typer.echo("--------------------")
    if pid is not None:
        typer.echo("State: Running")
        typer.echo(f"PID: {pid}")
    else:
        typer.echo("State: Not running")

    typer.echo(f"Queue: {status['queue_size']} pending messages")
    if status["oldest_message"]:
        typer.echo(f"Oldest: {status['oldest_message']}")
    typer.echo(f"Synced: {stats['synced']}")
    if stats["failed"] > 0:
        typer.echo(f"Failed: {stats['failed']} messages")
    typer.echo(f"Last sync: {_format_time_ago(stats['last_sync_time'])}")
    typer.echo("")

    if pid is None:
        typer.echo("Start the agent with: courier run")

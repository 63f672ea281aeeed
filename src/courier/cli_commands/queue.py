"""Queue administration CLI commands."""

import json

import typer

from courier.cli_commands.runtime import build_service
from courier.config import get_settings
from courier.sync import Priority

queue_app = typer.Typer(
    name="queue",
    help="Queue administration - add, list and clear queued messages.",
    no_args_is_help=True,
)


def _output(data: dict, as_json: bool, human_lines: list[str]) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        for line in human_lines:
            typer.echo(line)


@queue_app.command()
def add(
    content: str = typer.Argument(..., help="Message text to queue"),
    priority: Priority = typer.Option(
        Priority.NORMAL,
        "--priority",
        "-p",
        help="Delivery priority",
    ),
    message_id: str = typer.Option(
        None,
        "--id",
        help="Message id (generated when omitted)",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Queue a text message for delivery by the running agent."""
    service, store = build_service(get_settings())
    try:
        service.load()
        queued_id = service.enqueue({"content": content}, priority=priority, message_id=message_id)
        size = len(service.queue)
    finally:
        store.close()

    _output(
        {"status": "queued", "id": queued_id, "priority": priority.value, "queue_size": size},
        output_json,
        [f"Queued {queued_id} ({priority.value}), {size} in queue."],
    )


@queue_app.command(name="list")
def list_messages(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List queued messages in delivery order."""
    service, store = build_service(get_settings())
    try:
        service.load()
        messages = service.queue.drain_snapshot()
    finally:
        store.close()

    rows = [
        {
            "id": m.id,
            "priority": m.priority.value,
            "queued_at": m.queued_at,
            "retry_count": m.retry_count,
            "last_error": m.last_error,
        }
        for m in messages
    ]
    lines = [
        f"{row['id']}  {row['priority']:<6}  retries={row['retry_count']}"
        + (f"  error={row['last_error']}" if row["last_error"] else "")
        for row in rows
    ]
    _output({"messages": rows}, output_json, lines or ["Queue is empty."])


@queue_app.command()
def clear(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Remove every queued message."""
    service, store = build_service(get_settings())
    try:
        service.load()
        count = service.clear_queue()
    finally:
        store.close()

    _output(
        {"status": "cleared", "removed": count},
        output_json,
        [f"Cleared {count} messages from queue."],
    )

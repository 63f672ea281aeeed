"""Force sync command."""

import asyncio
import json

import typer

from courier.cli_commands.runtime import build_service
from courier.config import Settings, get_settings
from courier.sync import HttpMessageSender


async def _force_sync(settings: Settings) -> dict:
    sender = HttpMessageSender(settings.server_url, timeout=settings.request_timeout)
    service, store = build_service(settings, sender=sender.send)
    try:
        service.load()
        return await service.force_sync()
    finally:
        await sender.close()
        store.close()


def sync_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Deliver queued messages now, regardless of connectivity state."""
    settings = get_settings()
    status = asyncio.run(_force_sync(settings))

    if output_json:
        typer.echo(json.dumps(status))
        return

    stats = status["stats"]
    typer.echo(
        f"Sync finished: {stats['synced']} synced, {stats['failed']} failed, "
        f"{status['queue_size']} remaining."
    )

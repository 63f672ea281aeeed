"""Run command: start the delivery agent in the foreground."""

import asyncio
import json
import os
import signal
import socket

import typer

from courier.cli_commands.runtime import build_service, get_running_pid, pid_file
from courier.config import Settings, get_settings
from courier.logging import setup_logging
from courier.monitor import PollingConnectivityMonitor
from courier.sync import HttpMessageSender


def _output(data: dict, as_json: bool, human_message: str) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        typer.echo(human_message)


async def _run_agent(settings: Settings) -> dict:
    """Run the engine until SIGINT/SIGTERM, flushing the queue on exit."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    sender = HttpMessageSender(settings.server_url, timeout=settings.request_timeout)
    monitor = PollingConnectivityMonitor(sender.probe, interval=settings.probe_interval)
    service, store = build_service(settings, sender=sender.send, monitor=monitor)

    try:
        async with service:
            await stop_event.wait()
    finally:
        await sender.close()
        store.close()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)

    return service.queue_status()


def run_command(
    interval: float = typer.Option(
        None,
        "--interval",
        "-i",
        help="Sync interval in seconds (default: from config)",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Run the delivery agent.

    Delivers queued messages to the server whenever it is reachable.
    Press Ctrl+C to stop; the queue is saved before exit.
    """
    settings = get_settings()

    existing_pid = get_running_pid(settings)
    if existing_pid:
        _output(
            {"status": "error", "message": "Agent already running", "pid": existing_pid},
            output_json,
            f"Agent already running (PID: {existing_pid}).",
        )
        raise typer.Exit(1)

    if interval:
        settings = settings.model_copy(update={"sync_interval": interval})

    setup_logging(settings.log_level, settings.log_file, agent_id=socket.gethostname())

    _output(
        {"status": "starting", "pid": os.getpid(), "server_url": settings.server_url},
        output_json,
        f"Starting Courier agent (server: {settings.server_url}, "
        f"interval: {settings.sync_interval}s). Press Ctrl+C to stop.",
    )

    path = pid_file(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(os.getpid()))
    try:
        status = asyncio.run(_run_agent(settings))
    finally:
        path.unlink(missing_ok=True)

    stats = status["stats"]
    _output(
        {"status": "stopped", **status},
        output_json,
        f"Stopped. {stats['synced']} synced, {status['queue_size']} pending.",
    )

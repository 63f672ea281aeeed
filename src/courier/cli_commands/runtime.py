"""Shared wiring for CLI commands."""

import os
from pathlib import Path

from courier.config import Settings
from courier.engine import OfflineSyncService
from courier.monitor import ConnectivityMonitor, SignalConnectivityMonitor
from courier.sync import QueuedMessage, SendResult, Sender, SQLiteStore


async def unavailable_sender(message: QueuedMessage) -> SendResult:
    """Sender for commands that only edit the stored queue."""
    return SendResult(success=False, error="No transport configured")


def pid_file(settings: Settings) -> Path:
    return settings.data_path / "agent.pid"


def get_running_pid(settings: Settings) -> int | None:
    """Get the PID of the running agent, if any."""
    path = pid_file(settings)
    if not path.exists():
        return None

    try:
        pid = int(path.read_text().strip())
        # Check if process exists
        os.kill(pid, 0)
        return pid
    except (ValueError, OSError):
        return None


def build_service(
    settings: Settings,
    sender: Sender = unavailable_sender,
    monitor: ConnectivityMonitor | None = None,
) -> tuple[OfflineSyncService, SQLiteStore]:
    """Create a service backed by the SQLite store under data_dir.

    Without a monitor the service starts offline, so nothing is sent.

    Returns:
        Tuple of (service, store); the caller closes the store
    """
    store = SQLiteStore(settings.store_path)
    service = OfflineSyncService(
        settings,
        sender=sender,
        monitor=monitor or SignalConnectivityMonitor(initial_online=False),
        store=store,
    )
    return service, store

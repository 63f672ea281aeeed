"""Event notifications emitted by the delivery engine.

Consumers either register callbacks per event or read every event from a
channel (an asyncio.Queue of ``(event, payload)`` tuples):

    service.events.on(EngineEvent.MESSAGE_FAILED, alert_operator)

    channel = service.events.subscribe()
    event, payload = await channel.get()
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_SIZE = 1000


class EngineEvent(Enum):
    """Notifications produced by the engine."""

    ONLINE = "online"
    OFFLINE = "offline"
    MESSAGE_QUEUED = "message_queued"
    SYNC_COMPLETE = "sync_complete"
    MESSAGE_FAILED = "message_failed"


@dataclass(frozen=True)
class SyncSummary:
    """Outcome of one sync cycle."""

    synced: int
    failed: int
    remaining: int


class EventBus:
    """Fan-out of engine events to callbacks and channels.

    Each listener sees events in emission order. A listener that raises is
    logged and skipped; it never breaks the engine.
    """

    def __init__(self) -> None:
        self._callbacks: dict[EngineEvent, list[Callable[[Any], None]]] = {
            event: [] for event in EngineEvent
        }
        self._channels: list[asyncio.Queue] = []

    def on(self, event: EngineEvent, callback: Callable[[Any], None]) -> None:
        """Register a callback for one event.

        Args:
            event: Event to listen for
            callback: Called with the event payload (None for online/offline)
        """
        self._callbacks[event].append(callback)

    def off(self, event: EngineEvent, callback: Callable[[Any], None]) -> None:
        """Remove a previously registered callback."""
        if callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def subscribe(self, maxsize: int = DEFAULT_CHANNEL_SIZE) -> asyncio.Queue:
        """Open a channel receiving every event as ``(event, payload)``.

        When a channel is full, new events for it are dropped with a warning.
        """
        channel: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._channels.append(channel)
        return channel

    def unsubscribe(self, channel: asyncio.Queue) -> None:
        """Close a channel opened with subscribe()."""
        if channel in self._channels:
            self._channels.remove(channel)

    def emit(self, event: EngineEvent, payload: Any = None) -> None:
        """Deliver an event to all listeners."""
        for callback in list(self._callbacks[event]):
            try:
                callback(payload)
            except Exception as e:
                logger.error("Event listener failed: event=%s, error=%s", event.value, e)

        for channel in self._channels:
            try:
                channel.put_nowait((event, payload))
            except asyncio.QueueFull:
                logger.warning(
                    "Event channel full, dropping event: event=%s, maxsize=%d",
                    event.value, channel.maxsize,
                )

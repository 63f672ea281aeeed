"""Offline sync service wiring queue, delivery, persistence and scheduling."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

from courier.config import Settings
from courier.engine.scheduler import SyncScheduler
from courier.events import EngineEvent, EventBus, SyncSummary
from courier.logging import log_message_evicted, log_message_queued
from courier.monitor import ConnectivityMonitor
from courier.sync import (
    KeyValueStore,
    MessageQueue,
    Priority,
    QueuedMessage,
    QueuePersistence,
    RetryPolicy,
    Sender,
    SyncCoordinator,
    SyncStats,
)

logger = logging.getLogger(__name__)


def _iso(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class OfflineSyncService:
    """Offline-first message delivery engine.

    Messages are queued locally and delivered in priority order whenever
    the backend is reachable. The queue survives restarts through the
    persistence store. All collaborators are injected so tests can pass
    fakes.

    Example:
        service = OfflineSyncService(settings, sender.send, monitor, SQLiteStore(path))
        async with service:
            service.enqueue({"text": "hello"}, priority="high")
            ...
    """

    def __init__(
        self,
        config: Settings,
        sender: Sender,
        monitor: ConnectivityMonitor,
        store: KeyValueStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Args:
            config: Settings instance with queue and sync configuration
            sender: Async send primitive returning SendResult
            monitor: Connectivity monitor gating sync cycles
            store: Key-value store for snapshots, None keeps state in memory
            clock: Returns the current time in epoch seconds
        """
        self.config = config
        self.monitor = monitor
        self.events = EventBus()
        self._clock = clock

        self.queue = MessageQueue(max_size=config.max_queue_size, clock=clock)
        self.stats = SyncStats()

        self.persistence: QueuePersistence | None = None
        if store is not None and config.persist_queue:
            self.persistence = QueuePersistence(
                store,
                key=config.storage_key,
                max_age=config.snapshot_max_age,
                clock=clock,
            )

        self.retry_policy = RetryPolicy(
            self.queue, self.stats, max_attempts=config.retry_attempts, clock=clock
        )
        self.coordinator = SyncCoordinator(
            queue=self.queue,
            stats=self.stats,
            sender=sender,
            retry_policy=self.retry_policy,
            events=self.events,
            is_online=lambda: self.monitor.is_online,
            persistence=self.persistence,
            send_delay=config.send_delay,
            clock=clock,
        )
        self.scheduler = SyncScheduler(self.coordinator, interval=config.sync_interval)

        self.monitor.on_transition(self._handle_transition)
        self._loaded = False
        self._running = False

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    @property
    def is_syncing(self) -> bool:
        return self.coordinator.is_syncing

    @property
    def running(self) -> bool:
        return self._running

    def load(self) -> int:
        """Restore the persisted queue. Only the first call has an effect.

        Returns:
            Number of messages restored
        """
        if self._loaded:
            return 0
        self._loaded = True

        if self.persistence is None:
            return 0
        snapshot = self.persistence.load()
        if snapshot is None:
            return 0

        self.queue.restore(snapshot.queue)
        restored = snapshot.stats
        self.stats.queued = restored.queued
        self.stats.synced = restored.synced
        self.stats.failed = restored.failed
        self.stats.evicted = restored.evicted
        self.stats.last_sync_time = restored.last_sync_time
        self.stats.queue_size = len(self.queue)

        logger.info("Loaded queued messages from storage, count=%d", len(self.queue))
        return len(self.queue)

    async def start(self) -> None:
        """Load persisted state and start monitoring and scheduling."""
        if self._running:
            return
        self._running = True

        self.load()
        await self.monitor.start()
        await self.scheduler.start()
        logger.info(
            "Offline sync service started, queue_size=%d, online=%s",
            len(self.queue), self.is_online,
        )

        # Deliver anything restored from storage without waiting a full tick
        self.scheduler.request_sync("startup")

    async def stop(self) -> None:
        """Stop scheduling, wait for a running cycle, and flush the queue."""
        if not self._running:
            return
        self._running = False

        await self.scheduler.stop()
        await self.monitor.stop()
        self.persist()
        logger.info(
            "Offline sync service stopped, synced=%d, failed=%d, pending=%d",
            self.stats.synced, self.stats.failed, len(self.queue),
        )

    async def __aenter__(self) -> "OfflineSyncService":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    def persist(self) -> bool:
        """Write the current queue and stats to the store."""
        if self.persistence is None:
            return False
        return self.persistence.save(list(self.queue), self.stats)

    def enqueue(
        self,
        payload: Any,
        priority: Priority | str | None = None,
        message_id: str | None = None,
    ) -> str:
        """Queue a message for delivery.

        Never fails the caller: a full queue evicts a message instead.

        Args:
            payload: JSON-serializable message content
            priority: high, normal or low (default normal)
            message_id: Caller-supplied id, generated when omitted

        Returns:
            The message id
        """
        message = QueuedMessage(
            id=message_id or "",
            payload=payload,
            priority=self._coerce_priority(priority),
        )
        message_id, evicted = self.queue.enqueue(message)
        if evicted is not None:
            self.stats.evicted += 1
            reason = "oldest_low_priority" if evicted.priority == Priority.LOW else "oldest"
            log_message_evicted(logger, evicted.id, evicted.priority.value, reason)

        self.stats.queued += 1
        self.stats.queue_size = len(self.queue)
        self.persist()

        self.events.emit(EngineEvent.MESSAGE_QUEUED, message)
        log_message_queued(logger, message_id, message.priority.value, len(self.queue))

        if self.is_online:
            self.scheduler.request_sync("enqueue")
        return message_id

    @staticmethod
    def _coerce_priority(priority: Priority | str | None) -> Priority:
        if not priority:
            return Priority.NORMAL
        try:
            return Priority(priority)
        except ValueError:
            logger.warning("Unknown priority %r, using normal", priority)
            return Priority.NORMAL

    async def sync(self) -> SyncSummary | None:
        """Run a sync cycle now if possible."""
        return await self.coordinator.sync()

    async def force_sync(self) -> dict[str, Any]:
        """Run one sync cycle as if online, then report status.

        The connectivity override lasts only for this cycle; the monitor
        reports its observed state again afterwards.
        """
        logger.info("Forcing sync of queued messages, count=%d", len(self.queue))
        with self.monitor.override(True):
            await self.coordinator.sync()
        return self.queue_status()

    def clear_queue(self) -> int:
        """Drop every queued message.

        Returns:
            Number of messages removed
        """
        count = self.queue.clear()
        self.stats.queue_size = 0
        self.persist()
        logger.info("Cleared messages from queue, count=%d", count)
        return count

    def queue_status(self) -> dict[str, Any]:
        """Get current engine status.

        Returns:
            Dictionary with connectivity, sync state, queue size and stats
        """
        oldest = self.queue.oldest()
        self.stats.queue_size = len(self.queue)
        return {
            "is_online": self.is_online,
            "is_syncing": self.is_syncing,
            "queue_size": len(self.queue),
            "stats": self.stats.to_dict(),
            "oldest_message": _iso(oldest.queued_at) if oldest else None,
        }

    def _handle_transition(self, online: bool) -> None:
        """Emit the transition event and sync immediately on reconnect."""
        if online:
            self.events.emit(EngineEvent.ONLINE)
            self.scheduler.request_sync("reconnect")
        else:
            logger.info("Offline, messages will be queued")
            self.events.emit(EngineEvent.OFFLINE)

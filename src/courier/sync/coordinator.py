"""Sync coordinator draining the queue to the transport."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from courier.errors import TransientSendError
from courier.events import EngineEvent, EventBus, SyncSummary
from courier.logging import log_sync_complete
from courier.sync.persistence import QueuePersistence
from courier.sync.queue import MessageQueue, QueuedMessage, SyncStats
from courier.sync.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Result of a single delivery attempt."""

    success: bool
    error: str | None = None


Sender = Callable[[QueuedMessage], Awaitable[SendResult]]


class SyncCoordinator:
    """Delivers queued messages one at a time in priority order.

    Only one sync cycle runs at a time. A cycle takes a snapshot of the
    queue, sends each message with a fixed pause between sends, and then
    persists the queue and reports a summary. Messages enqueued while a
    cycle runs wait for the next one.

    Example:
        coordinator = SyncCoordinator(queue, stats, sender, retry, events,
                                      is_online=lambda: monitor.is_online)
        summary = await coordinator.sync()
    """

    def __init__(
        self,
        queue: MessageQueue,
        stats: SyncStats,
        sender: Sender,
        retry_policy: RetryPolicy,
        events: EventBus,
        is_online: Callable[[], bool],
        persistence: QueuePersistence | None = None,
        send_delay: float = 0.1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the coordinator.

        Args:
            queue: Queue to drain
            stats: Shared counters
            sender: Async send primitive returning SendResult
            retry_policy: Decides what happens after a failed send
            events: Bus for sync_complete and message_failed
            is_online: Returns the current connectivity state
            persistence: Snapshot adapter, None disables persistence
            send_delay: Seconds to wait between two sends
            clock: Returns the current time in epoch seconds
        """
        self.queue = queue
        self.stats = stats
        self._send = sender
        self.retry_policy = retry_policy
        self.events = events
        self._is_online = is_online
        self.persistence = persistence
        self.send_delay = send_delay
        self._clock = clock
        self._syncing = False

    @property
    def is_syncing(self) -> bool:
        """True while a sync cycle is running."""
        return self._syncing

    def can_sync(self) -> bool:
        """Check the preconditions for doing work."""
        return self._is_online() and len(self.queue) > 0 and not self._syncing

    async def sync(self) -> SyncSummary | None:
        """Run one sync cycle.

        Returns:
            Summary of the cycle, or None when nothing was done because
            a cycle is already running, the agent is offline, or the queue
            is empty
        """
        if not self.can_sync():
            return None

        self._syncing = True
        try:
            return await self._run_cycle()
        finally:
            self._syncing = False

    async def _run_cycle(self) -> SyncSummary:
        snapshot = self.queue.drain_snapshot()
        logger.info("Syncing queued messages, count=%d", len(snapshot))

        synced = 0
        failed = 0
        for index, message in enumerate(snapshot):
            if message.id not in self.queue:
                # Removed while the cycle was running (e.g. queue cleared)
                continue

            if index > 0 and self.send_delay > 0:
                await asyncio.sleep(self.send_delay)

            error = await self._attempt(message)
            if error is None:
                self.queue.remove(message.id)
                self.stats.synced += 1
                synced += 1
                logger.debug("Message synced: message_id=%s", message.id)
                continue

            failed += 1
            if self.queue.get(message.id) is not message:
                # Cleared while the send was in flight, nothing left to retry
                continue
            failure = self.retry_policy.on_failure(message, error)
            if failure is not None:
                self.events.emit(EngineEvent.MESSAGE_FAILED, failure.message)

        self.stats.queue_size = len(self.queue)
        self.stats.last_sync_time = self._clock()
        if self.persistence is not None:
            self.persistence.save(list(self.queue), self.stats)

        summary = SyncSummary(synced=synced, failed=failed, remaining=len(self.queue))
        log_sync_complete(logger, summary.synced, summary.failed, summary.remaining)
        self.events.emit(EngineEvent.SYNC_COMPLETE, summary)
        return summary

    async def _attempt(self, message: QueuedMessage) -> TransientSendError | None:
        """Send one message, converting any failure to TransientSendError."""
        try:
            result = await self._send(message)
        except Exception as e:
            return TransientSendError(message.id, str(e) or type(e).__name__)
        if result.success:
            return None
        return TransientSendError(message.id, result.error or "Unknown error")

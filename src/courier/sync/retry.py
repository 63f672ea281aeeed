"""Retry policy deciding between another attempt and permanent failure."""

import logging
import time
from typing import Callable

from courier.errors import PermanentDeliveryFailure, TransientSendError
from courier.logging import log_delivery_failed
from courier.sync.queue import MessageQueue, MessageStatus, QueuedMessage, SyncStats

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Bounded retry bookkeeping for failed deliveries.

    A failed message stays pending until it has been retried ``max_attempts``
    times. The next failure after that removes it from the queue and counts
    it as failed. There is no backoff wait: a retry happens on the next sync
    cycle.

    The retry count is stored on the message itself, so it is persisted with
    the queue and disappears when the message is removed.
    """

    def __init__(
        self,
        queue: MessageQueue,
        stats: SyncStats,
        max_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the retry policy.

        Args:
            queue: Queue holding the messages
            stats: Shared counters, ``failed`` is incremented here
            max_attempts: Retries allowed before a message fails permanently
            clock: Returns the current time in epoch seconds
        """
        self.queue = queue
        self.stats = stats
        self.max_attempts = max_attempts
        self._clock = clock

    def on_failure(
        self,
        message: QueuedMessage,
        error: TransientSendError,
    ) -> PermanentDeliveryFailure | None:
        """Record a failed attempt.

        Args:
            message: The message that failed to send
            error: The converted transport failure

        Returns:
            PermanentDeliveryFailure when the budget is exhausted, else None
        """
        now = self._clock()
        message.last_error = error.error
        message.last_attempt_at = now

        if message.retry_count < self.max_attempts:
            message.retry_count += 1
            log_delivery_failed(
                logger, message.id, error.error,
                message.retry_count, self.max_attempts, permanent=False,
            )
            return None

        self.queue.remove(message.id)
        message.status = MessageStatus.FAILED
        message.failed_at = now
        self.stats.failed += 1
        log_delivery_failed(
            logger, message.id, error.error,
            message.retry_count, self.max_attempts, permanent=True,
        )
        return PermanentDeliveryFailure(message, error.error)

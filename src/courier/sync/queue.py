"""Bounded in-memory priority queue for offline message delivery."""

import logging
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    """Delivery-order class of a queued message."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, lower is delivered first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.NORMAL: 1, Priority.LOW: 2}


class MessageStatus(str, Enum):
    """Lifecycle status of a queued message."""

    PENDING = "pending"
    FAILED = "failed"


@dataclass
class QueuedMessage:
    """A message waiting in the delivery queue."""

    id: str
    payload: Any
    priority: Priority = Priority.NORMAL
    queued_at: float = 0.0  # epoch seconds
    retry_count: int = 0
    last_error: str | None = None
    status: MessageStatus = MessageStatus.PENDING
    last_attempt_at: float | None = None
    failed_at: float | None = None

    @property
    def sort_key(self) -> tuple[int, float]:
        """Key ordering messages by priority, then age."""
        return (self.priority.rank, self.queued_at)


@dataclass
class SyncStats:
    """Delivery counters. Derived and recomputable from the queue."""

    queued: int = 0
    synced: int = 0
    failed: int = 0
    evicted: int = 0
    last_sync_time: float | None = None
    queue_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "queued": self.queued,
            "synced": self.synced,
            "failed": self.failed,
            "evicted": self.evicted,
            "last_sync_time": self.last_sync_time,
            "queue_size": self.queue_size,
        }


def generate_message_id(clock: Callable[[], float] = time.time) -> str:
    """Generate a message id of the form ``<epoch-millis>-<random>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{int(clock() * 1000)}-{suffix}"


class MessageQueue:
    """Bounded queue of undelivered messages.

    Messages are kept in insertion order. When the queue is full, enqueue
    evicts the oldest low-priority message, or the oldest message of any
    priority when no low-priority one exists, so enqueue never fails.

    Example:
        queue = MessageQueue(max_size=100)
        queue.enqueue(QueuedMessage(id="m1", payload={"text": "hi"}))
        for message in queue.drain_snapshot():
            ...
    """

    def __init__(
        self,
        max_size: int = 10_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the queue.

        Args:
            max_size: Maximum number of messages held at once
            clock: Returns the current time in epoch seconds
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._clock = clock
        self._messages: list[QueuedMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[QueuedMessage]:
        return iter(list(self._messages))

    def __contains__(self, message_id: object) -> bool:
        return any(m.id == message_id for m in self._messages)

    def get(self, message_id: str) -> QueuedMessage | None:
        """Return the message with the given id, if queued."""
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def oldest(self) -> QueuedMessage | None:
        """Return the head of the queue (first enqueued)."""
        return self._messages[0] if self._messages else None

    def enqueue(self, message: QueuedMessage) -> tuple[str, QueuedMessage | None]:
        """Add a message, evicting one first if the queue is full.

        Assigns defaults: a generated id when missing, the current time as
        ``queued_at``, retry count 0 and pending status.

        Args:
            message: Message to add

        Returns:
            Tuple of (assigned id, evicted message or None)
        """
        if not message.id:
            message.id = generate_message_id(self._clock)
        message.queued_at = self._clock()
        message.retry_count = 0
        message.status = MessageStatus.PENDING
        if not isinstance(message.priority, Priority):
            message.priority = Priority(message.priority or Priority.NORMAL)

        evicted = None
        if len(self._messages) >= self.max_size:
            evicted = self._evict()

        self._messages.append(message)
        return message.id, evicted

    def _evict(self) -> QueuedMessage:
        """Remove the oldest low-priority message, else the head."""
        for index, message in enumerate(self._messages):
            if message.priority == Priority.LOW:
                return self._messages.pop(index)
        # No low-priority candidate: this can drop a high-priority message
        return self._messages.pop(0)

    def drain_snapshot(self) -> list[QueuedMessage]:
        """Return pending messages in delivery order without removing them.

        Order is priority rank (high, normal, low), then ``queued_at``
        ascending. The sort is stable so equal keys keep insertion order.
        """
        pending = [m for m in self._messages if m.status == MessageStatus.PENDING]
        return sorted(pending, key=lambda m: m.sort_key)

    def remove(self, message_id: str) -> QueuedMessage | None:
        """Remove a message by id.

        Returns:
            The removed message, or None if it was not queued
        """
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                return self._messages.pop(index)
        return None

    def clear(self) -> int:
        """Remove all messages.

        Returns:
            Number of messages removed
        """
        count = len(self._messages)
        self._messages = []
        return count

    def restore(self, messages: Iterable[QueuedMessage]) -> list[QueuedMessage]:
        """Replace the contents with previously persisted messages.

        Message fields are kept as persisted. If there are more messages than
        the queue can hold, the eviction policy trims them.

        Returns:
            Messages dropped to fit the capacity
        """
        self._messages = list(messages)
        dropped = []
        while len(self._messages) > self.max_size:
            dropped.append(self._evict())
        if dropped:
            logger.warning(
                "Restored queue exceeded capacity, dropped=%d, max_size=%d",
                len(dropped), self.max_size,
            )
        return dropped

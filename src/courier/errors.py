"""Error taxonomy for the delivery engine.

None of these escape from ``enqueue``, ``sync`` or the scheduler loop. They
are raised and caught at the boundary where the underlying failure occurs
(transport or storage) and end up in logs, events and stats.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from courier.sync.queue import QueuedMessage


class CourierError(Exception):
    """Base class for delivery engine errors."""


class TransientSendError(CourierError):
    """A single delivery attempt failed and may be retried."""

    def __init__(self, message_id: str, error: str) -> None:
        super().__init__(f"Send failed for {message_id}: {error}")
        self.message_id = message_id
        self.error = error


class PermanentDeliveryFailure(CourierError):
    """The retry budget for a message is exhausted."""

    def __init__(self, message: QueuedMessage, error: str | None) -> None:
        super().__init__(
            f"Message {message.id} failed permanently after "
            f"{message.retry_count} retries: {error}"
        )
        self.message = message
        self.error = error


class PersistenceIOError(CourierError):
    """Snapshot storage is unavailable or holds a corrupt snapshot."""


class StaleSnapshotDiscarded(CourierError):
    """A persisted snapshot was older than the staleness window."""

    def __init__(self, age_seconds: float, max_age_seconds: float) -> None:
        super().__init__(
            f"Snapshot is {age_seconds:.0f}s old (limit {max_age_seconds:.0f}s)"
        )
        self.age_seconds = age_seconds
        self.max_age_seconds = max_age_seconds

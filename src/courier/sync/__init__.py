"""Sync module: bounded queue, delivery, retries and persistence."""

from courier.sync.coordinator import SendResult, Sender, SyncCoordinator
from courier.sync.persistence import (
    KeyValueStore,
    MemoryStore,
    QueuePersistence,
    QueueSnapshot,
    SQLiteStore,
)
from courier.sync.queue import (
    MessageQueue,
    MessageStatus,
    Priority,
    QueuedMessage,
    SyncStats,
)
from courier.sync.retry import RetryPolicy
from courier.sync.transport import HttpMessageSender

__all__ = [
    "HttpMessageSender",
    "KeyValueStore",
    "MemoryStore",
    "MessageQueue",
    "MessageStatus",
    "Priority",
    "QueuePersistence",
    "QueueSnapshot",
    "QueuedMessage",
    "RetryPolicy",
    "SQLiteStore",
    "SendResult",
    "Sender",
    "SyncCoordinator",
    "SyncStats",
]

"""Snapshot persistence for the delivery queue.

The whole queue and its stats are stored as one JSON blob under a fixed key
in a key-value store. A snapshot older than the staleness window is thrown
away on load rather than partially merged.
"""

import logging
import sqlite3
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from pydantic import BaseModel, Field, ValidationError

from courier.errors import PersistenceIOError, StaleSnapshotDiscarded
from courier.sync.queue import QueuedMessage, SyncStats

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "courier_offline_queue"
DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class KeyValueStore(Protocol):
    """Byte storage consumed by the persistence adapter."""

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store for tests and ephemeral agents."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def close(self) -> None:
        pass


class SQLiteStore:
    """SQLite-backed key-value store.

    Survives agent restarts. One row per key; the delivery engine only ever
    uses a single key.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_table()

    def _create_table(self) -> None:
        """Create the store table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def get(self, key: str) -> bytes | None:
        cursor = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?",
            (key,),
        )
        row = cursor.fetchone()
        return bytes(row["value"]) if row else None

    def set(self, key: str, value: bytes) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self._conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, now),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


class QueueSnapshot(BaseModel):
    """Persisted state: the queue, its stats and when it was written."""

    queue: list[QueuedMessage]
    stats: SyncStats = Field(default_factory=SyncStats)
    timestamp: float  # epoch seconds


class QueuePersistence:
    """Saves and restores queue snapshots without ever raising.

    Storage and decode failures become PersistenceIOError, are logged, and
    the engine carries on with its in-memory state.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_STORAGE_KEY,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the adapter.

        Args:
            store: Key-value byte store
            key: Key the snapshot is stored under
            max_age: Seconds after which a snapshot is discarded on load
            clock: Returns the current time in epoch seconds
        """
        self.store = store
        self.key = key
        self.max_age = max_age
        self._clock = clock

    def save(self, queue: list[QueuedMessage], stats: SyncStats) -> bool:
        """Write a snapshot of the queue and stats.

        Returns:
            True if the snapshot was written, False if storage failed
        """
        try:
            self._write(queue, stats)
        except PersistenceIOError as e:
            logger.error("Failed to persist queue: %s", e)
            return False
        return True

    def load(self) -> QueueSnapshot | None:
        """Read the stored snapshot.

        Returns:
            The snapshot, or None if there is none, it is stale, or it
            could not be read
        """
        try:
            snapshot = self._read()
            if snapshot is not None:
                self._check_age(snapshot)
        except StaleSnapshotDiscarded as e:
            logger.info("Discarding stale queue snapshot: %s", e)
            self._discard()
            return None
        except PersistenceIOError as e:
            logger.error("Failed to load persisted queue: %s", e)
            return None
        return snapshot

    def _write(self, queue: list[QueuedMessage], stats: SyncStats) -> None:
        try:
            snapshot = QueueSnapshot(queue=queue, stats=stats, timestamp=self._clock())
            self.store.set(self.key, snapshot.model_dump_json().encode("utf-8"))
        except Exception as e:
            raise PersistenceIOError(f"write failed: {e}") from e

    def _read(self) -> QueueSnapshot | None:
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            raise PersistenceIOError(f"read failed: {e}") from e
        if raw is None:
            return None
        try:
            return QueueSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise PersistenceIOError(f"corrupt snapshot: {e}") from e

    def _check_age(self, snapshot: QueueSnapshot) -> None:
        age = self._clock() - snapshot.timestamp
        # A timestamp from the future (clock skew) is judged by its distance too
        if abs(age) >= self.max_age:
            raise StaleSnapshotDiscarded(age, self.max_age)

    def _discard(self) -> None:
        try:
            self.store.delete(self.key)
        except Exception as e:
            logger.error("Failed to delete stale snapshot: %s", e)

"""Engine module for delivery orchestration."""

from courier.engine.scheduler import SyncScheduler
from courier.engine.service import OfflineSyncService

__all__ = ["OfflineSyncService", "SyncScheduler"]

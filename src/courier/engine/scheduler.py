"""Scheduler driving sync cycles from timer, enqueue and reconnect triggers."""

import asyncio
import logging

from courier.sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Starts sync cycles on the coordinator.

    Every trigger goes through request_sync(), which starts
    ``coordinator.sync()`` as a task when the coordinator can do work. The
    coordinator's single-flight guard makes overlapping requests harmless.

    Example:
        scheduler = SyncScheduler(coordinator, interval=5.0)
        await scheduler.start()
        scheduler.request_sync("enqueue")
        await scheduler.stop()
    """

    def __init__(self, coordinator: SyncCoordinator, interval: float = 5.0) -> None:
        """Initialize the scheduler.

        Args:
            coordinator: Coordinator running the sync cycles
            interval: Seconds between timer-triggered sync attempts
        """
        self.coordinator = coordinator
        self.interval = interval
        self._running = False
        self._timer_task: asyncio.Task | None = None
        self._sync_tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic timer."""
        if self._running:
            return
        self._running = True
        self._timer_task = asyncio.create_task(self._timer())

    async def _timer(self) -> None:
        """Background worker requesting a sync every interval."""
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                self.request_sync("timer")
            except Exception as e:
                logger.error("Sync timer error: %s", e)

    def request_sync(self, reason: str) -> asyncio.Task | None:
        """Start a sync cycle if one can run now.

        Ignored when the scheduler is stopped.

        Args:
            reason: Trigger name for logging (timer, enqueue, reconnect)

        Returns:
            The started task, or None if no cycle was started
        """
        if not self._running or not self.coordinator.can_sync():
            return None

        logger.debug("Sync requested: reason=%s", reason)
        task = asyncio.create_task(self._run_sync(reason))
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)
        return task

    async def _run_sync(self, reason: str) -> None:
        try:
            await self.coordinator.sync()
        except Exception as e:
            logger.error("Sync cycle failed: reason=%s, error=%s", reason, e, exc_info=True)

    async def wait_idle(self) -> None:
        """Wait until every sync cycle started by this scheduler has finished."""
        pending = [task for task in self._sync_tasks if not task.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [task for task in self._sync_tasks if not task.done()]

    async def stop(self) -> None:
        """Stop the timer and wait for running sync cycles to finish."""
        self._running = False

        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

        await self.wait_idle()

"""Connectivity monitoring with edge-triggered online/offline transitions."""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator

from courier.logging import log_state_change

logger = logging.getLogger(__name__)

Probe = Callable[[], bool | Awaitable[bool]]
TransitionCallback = Callable[[bool], None]


class ConnectivityMonitor(ABC):
    """Tracks whether the backend is reachable.

    Holds a single boolean. Callbacks registered with on_transition() are
    called synchronously, once per state flip, with the new state. Setting
    the same state again does nothing.
    """

    def __init__(self, initial_online: bool = True) -> None:
        self._online = initial_online
        self._override: bool | None = None
        self._callbacks: list[TransitionCallback] = []

    @property
    def is_online(self) -> bool:
        """Current state, honoring an active override."""
        if self._override is not None:
            return self._override
        return self._online

    @property
    def observed_online(self) -> bool:
        """Last state observed from the probe or platform signals."""
        return self._online

    def on_transition(self, callback: TransitionCallback) -> None:
        """Register a callback for state flips.

        Args:
            callback: Called with True when going online, False when going offline
        """
        self._callbacks.append(callback)

    def set_online(self, online: bool, trigger: str | None = None) -> bool:
        """Record an observed state.

        Returns:
            True if the state flipped
        """
        if online == self._online:
            return False

        old = self._online
        self._online = online
        log_state_change(
            logger,
            "online" if old else "offline",
            "online" if online else "offline",
            trigger,
        )
        for callback in list(self._callbacks):
            try:
                callback(online)
            except Exception as e:
                logger.error("Connectivity callback failed: %s", e)
        return True

    @contextmanager
    def override(self, online: bool) -> Iterator[None]:
        """Temporarily report a fixed state without emitting transitions.

        On exit the monitor reports the latest observed state again.
        """
        previous = self._override
        self._override = online
        try:
            yield
        finally:
            self._override = previous

    @abstractmethod
    async def start(self) -> None:
        """Begin tracking connectivity."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop tracking connectivity."""


class PollingConnectivityMonitor(ConnectivityMonitor):
    """Probes the backend on a fixed interval.

    Example:
        monitor = PollingConnectivityMonitor(sender.probe, interval=5.0)
        await monitor.start()
    """

    def __init__(
        self,
        probe: Probe,
        interval: float = 5.0,
        initial_online: bool = True,
    ) -> None:
        """Initialize the monitor.

        Args:
            probe: Sync or async callable returning True when reachable
            interval: Seconds between probes
            initial_online: State assumed before the first probe
        """
        super().__init__(initial_online)
        self._probe = probe
        self.interval = interval
        self._task: asyncio.Task | None = None

    async def check(self) -> bool:
        """Run the probe once and record the result.

        A probe that raises counts as offline.

        Returns:
            The observed state
        """
        try:
            result = self._probe()
            if inspect.isawaitable(result):
                result = await result
            online = bool(result)
        except Exception as e:
            logger.warning("Connectivity probe failed: %s", e)
            online = False

        self.set_online(online, trigger="probe")
        return online

    async def start(self) -> None:
        """Probe once, then keep probing in the background.

        The first result is known before start() returns, so callers never
        act on the assumed initial state.
        """
        if self._task is None or self._task.done():
            await self.check()
            self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None


class SignalConnectivityMonitor(ConnectivityMonitor):
    """Driven by platform-native online/offline notifications."""

    def notify_online(self) -> None:
        self.set_online(True, trigger="signal")

    def notify_offline(self) -> None:
        self.set_online(False, trigger="signal")

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

"""Shared fixtures: fake clock, fake sender and engine factories."""

import pytest

from courier.config import Settings
from courier.engine import OfflineSyncService
from courier.monitor import SignalConnectivityMonitor
from courier.sync import MemoryStore, QueuedMessage, SendResult

START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSender:
    """Records sends; fails for ids in ``failing`` (or all when fail_all)."""

    def __init__(self, failing: set[str] | None = None, fail_all: bool = False) -> None:
        self.failing = failing or set()
        self.fail_all = fail_all
        self.sent: list[str] = []

    async def __call__(self, message: QueuedMessage) -> SendResult:
        self.sent.append(message.id)
        if self.fail_all or message.id in self.failing:
            return SendResult(success=False, error="Server error: 503")
        return SendResult(success=True)


def make_settings(**overrides) -> Settings:
    values = {
        "send_delay": 0.0,
        "sync_interval": 60.0,
        "probe_interval": 60.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def monitor():
    return SignalConnectivityMonitor(initial_online=True)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def service(settings, sender, monitor, store, clock):
    """Service with fakes, not started."""
    return OfflineSyncService(settings, sender, monitor, store=store, clock=clock)

"""Integration tests for the offline sync service.

Tests that the engine components work together:
- Enqueue triggers delivery when online, queues when offline
- Reconnect triggers an immediate sync
- force_sync delivers while offline without changing reported state
- Queue and stats survive a restart through the store
- Events reach callbacks and channels
"""

import pytest

from conftest import FakeSender, make_settings
from courier.engine import OfflineSyncService
from courier.events import EngineEvent, SyncSummary
from courier.monitor import PollingConnectivityMonitor, SignalConnectivityMonitor
from courier.sync import Priority

HOUR = 60 * 60


class TestEnqueue:
    """Tests for enqueue behavior."""

    @pytest.mark.asyncio
    async def test_enqueue_online_delivers(self, service, sender):
        async with service:
            message_id = service.enqueue({"content": "hello"})
            await service.scheduler.wait_idle()

        assert sender.sent == [message_id]
        assert service.stats.queued == 1
        assert service.stats.synced == 1
        assert len(service.queue) == 0

    @pytest.mark.asyncio
    async def test_enqueue_offline_only_queues(self, service, sender, monitor):
        monitor.notify_offline()
        async with service:
            service.enqueue({"content": "hello"}, priority="high", message_id="m1")
            await service.scheduler.wait_idle()

            assert sender.sent == []
            assert service.queue.get("m1").priority is Priority.HIGH

    def test_enqueue_persists(self, service, store):
        service.enqueue({"content": "hello"}, message_id="m1")

        snapshot = service.persistence.load()
        assert [m.id for m in snapshot.queue] == ["m1"]
        assert snapshot.stats.queued == 1

    def test_unknown_priority_falls_back_to_normal(self, service):
        message_id = service.enqueue("x", priority="urgent")
        assert service.queue.get(message_id).priority is Priority.NORMAL

    def test_enqueue_full_queue_counts_eviction(self, sender, monitor, store, clock):
        service = OfflineSyncService(
            make_settings(max_queue_size=2), sender, monitor, store=store, clock=clock
        )
        for message_id in ["a", "b", "c"]:
            service.enqueue({}, message_id=message_id)

        assert [m.id for m in service.queue] == ["b", "c"]
        assert service.stats.evicted == 1
        assert service.stats.queue_size == 2

    def test_enqueue_without_store(self, settings, sender, monitor):
        service = OfflineSyncService(settings, sender, monitor)
        assert service.enqueue("x")
        assert service.persist() is False


class TestConnectivity:
    """Tests for reconnect and force sync."""

    @pytest.mark.asyncio
    async def test_reconnect_triggers_sync(self, service, sender, monitor):
        monitor.notify_offline()
        async with service:
            service.enqueue({}, message_id="m1")
            await service.scheduler.wait_idle()
            assert sender.sent == []

            monitor.notify_online()
            await service.scheduler.wait_idle()

        assert sender.sent == ["m1"]

    @pytest.mark.asyncio
    async def test_force_sync_while_offline(self, service, sender, monitor):
        """One delivery pass, and offline is reported again afterwards."""
        monitor.notify_offline()
        service.enqueue({}, message_id="m1")
        service.enqueue({}, message_id="m2")

        status = await service.force_sync()

        assert sender.sent == ["m1", "m2"]
        assert status["queue_size"] == 0
        assert status["is_online"] is False
        assert service.is_online is False

    @pytest.mark.asyncio
    async def test_transition_events(self, service, monitor):
        seen: list[str] = []
        service.events.on(EngineEvent.OFFLINE, lambda _: seen.append("offline"))
        service.events.on(EngineEvent.ONLINE, lambda _: seen.append("online"))

        async with service:
            monitor.notify_offline()
            monitor.notify_offline()
            monitor.notify_online()

        assert seen == ["offline", "online"]


class TestPermanentFailure:
    """Tests for the message_failed path through the service."""

    @pytest.mark.asyncio
    async def test_failed_message_reported_once(self, settings, monitor, store, clock):
        sender = FakeSender(fail_all=True)
        service = OfflineSyncService(settings, sender, monitor, store=store, clock=clock)
        failed = []
        service.events.on(EngineEvent.MESSAGE_FAILED, failed.append)
        service.enqueue({}, message_id="doomed")

        for _ in range(settings.retry_attempts + 3):
            await service.sync()

        assert len(sender.sent) == settings.retry_attempts + 1
        assert [m.id for m in failed] == ["doomed"]
        assert service.queue_status()["stats"]["failed"] == 1


class TestRestart:
    """Tests for persistence across restarts."""

    @pytest.mark.asyncio
    async def test_queue_survives_restart(self, settings, store, clock):
        offline = SignalConnectivityMonitor(initial_online=False)
        first = OfflineSyncService(settings, FakeSender(), offline, store=store, clock=clock)
        async with first:
            first.enqueue({"content": "one"}, message_id="m1")
            first.enqueue({"content": "two"}, message_id="m2", priority="high")

        clock.advance(23 * HOUR)
        second = OfflineSyncService(
            settings, FakeSender(), SignalConnectivityMonitor(initial_online=False),
            store=store, clock=clock,
        )

        assert second.load() == 2
        assert [m.id for m in second.queue.drain_snapshot()] == ["m2", "m1"]
        assert second.stats.queued == 2

    @pytest.mark.asyncio
    async def test_stale_queue_discarded_on_restart(self, settings, store, clock):
        first = OfflineSyncService(
            settings, FakeSender(), SignalConnectivityMonitor(initial_online=False),
            store=store, clock=clock,
        )
        first.enqueue({}, message_id="m1")

        clock.advance(25 * HOUR)
        second = OfflineSyncService(
            settings, FakeSender(), SignalConnectivityMonitor(initial_online=False),
            store=store, clock=clock,
        )

        assert second.load() == 0
        assert len(second.queue) == 0
        assert second.stats.queued == 0

    @pytest.mark.asyncio
    async def test_restored_queue_delivered_on_start(self, settings, store, clock):
        offline = OfflineSyncService(
            settings, FakeSender(), SignalConnectivityMonitor(initial_online=False),
            store=store, clock=clock,
        )
        offline.enqueue({}, message_id="m1")

        sender = FakeSender()
        online = OfflineSyncService(
            settings, sender, SignalConnectivityMonitor(initial_online=True),
            store=store, clock=clock,
        )
        async with online:
            await online.scheduler.wait_idle()

        assert sender.sent == ["m1"]

    @pytest.mark.asyncio
    async def test_restart_while_server_down_spends_no_retry(self, settings, store, clock):
        """The startup sync waits for the first probe instead of assuming online."""
        offline = OfflineSyncService(
            settings, FakeSender(), SignalConnectivityMonitor(initial_online=False),
            store=store, clock=clock,
        )
        offline.enqueue({}, message_id="m1")

        sender = FakeSender()
        monitor = PollingConnectivityMonitor(lambda: False, interval=60, initial_online=True)
        restarted = OfflineSyncService(settings, sender, monitor, store=store, clock=clock)
        async with restarted:
            await restarted.scheduler.wait_idle()
            assert restarted.is_online is False

        assert sender.sent == []
        assert restarted.queue.get("m1").retry_count == 0

    @pytest.mark.asyncio
    async def test_flush_on_error_exit(self, service, store, monitor):
        """Leaving the context through an exception still saves the queue."""
        monitor.notify_offline()
        with pytest.raises(RuntimeError):
            async with service:
                service.enqueue({}, message_id="m1")
                store.data.clear()
                raise RuntimeError("crash")

        assert service.persistence.load() is not None

    def test_persist_disabled(self, sender, monitor, store, clock):
        service = OfflineSyncService(
            make_settings(persist_queue=False), sender, monitor, store=store, clock=clock
        )
        service.enqueue({})

        assert service.persistence is None
        assert store.data == {}


class BrokenStore:
    """Store backend that is down."""

    def get(self, key):
        raise RuntimeError("backend unavailable")

    def set(self, key, value):
        raise RuntimeError("backend unavailable")

    def delete(self, key):
        raise RuntimeError("backend unavailable")


class TestStorageFailure:
    """A failing store never breaks the caller."""

    def test_enqueue_and_load_survive_broken_store(self, settings, sender, monitor, clock):
        service = OfflineSyncService(settings, sender, monitor, store=BrokenStore(), clock=clock)

        assert service.load() == 0
        message_id = service.enqueue({"x": 1})

        assert message_id
        assert len(service.queue) == 1

    @pytest.mark.asyncio
    async def test_sync_completes_with_broken_store(self, settings, sender, monitor, clock):
        service = OfflineSyncService(settings, sender, monitor, store=BrokenStore(), clock=clock)
        summaries = []
        service.events.on(EngineEvent.SYNC_COMPLETE, summaries.append)
        service.enqueue({}, message_id="m1")

        await service.sync()

        assert sender.sent == ["m1"]
        assert summaries == [SyncSummary(synced=1, failed=0, remaining=0)]


class TestAdministration:
    """Tests for status and clear operations."""

    def test_queue_status(self, service, monitor, clock):
        monitor.notify_offline()
        service.enqueue({}, message_id="m1")
        clock.advance(10)
        service.enqueue({}, message_id="m2")

        status = service.queue_status()

        assert status["is_online"] is False
        assert status["is_syncing"] is False
        assert status["queue_size"] == 2
        assert status["stats"]["queued"] == 2
        assert status["oldest_message"] == "2023-11-14T22:13:20+00:00"

    def test_queue_status_empty(self, service):
        assert service.queue_status()["oldest_message"] is None

    def test_clear_queue(self, service, monitor):
        monitor.notify_offline()
        service.enqueue({})
        service.enqueue({})

        assert service.clear_queue() == 2
        assert service.queue_status()["queue_size"] == 0
        assert service.persistence.load().queue == []


class TestEvents:
    """Tests for event delivery."""

    @pytest.mark.asyncio
    async def test_channel_receives_events_in_order(self, service):
        channel = service.events.subscribe()

        async with service:
            service.enqueue({}, message_id="m1")
            await service.scheduler.wait_idle()

        events = []
        while not channel.empty():
            events.append(channel.get_nowait())

        assert [event for event, _ in events] == [
            EngineEvent.MESSAGE_QUEUED,
            EngineEvent.SYNC_COMPLETE,
        ]
        assert events[0][1].id == "m1"
        assert events[1][1] == SyncSummary(synced=1, failed=0, remaining=0)

    def test_listener_error_is_isolated(self, service):
        seen = []

        def broken(message):
            raise ValueError("listener bug")

        service.events.on(EngineEvent.MESSAGE_QUEUED, broken)
        service.events.on(EngineEvent.MESSAGE_QUEUED, seen.append)

        service.enqueue({}, message_id="m1")

        assert [m.id for m in seen] == ["m1"]

    def test_full_channel_drops_events(self, service):
        """A channel nobody reads stays bounded."""
        channel = service.events.subscribe(maxsize=2)
        seen = []
        service.events.on(EngineEvent.MESSAGE_QUEUED, seen.append)

        for message_id in ["m1", "m2", "m3"]:
            service.enqueue({}, message_id=message_id)

        assert channel.qsize() == 2
        assert channel.get_nowait()[1].id == "m1"
        assert len(seen) == 3

    def test_off_removes_listener(self, service):
        seen = []
        service.events.on(EngineEvent.MESSAGE_QUEUED, seen.append)
        service.events.off(EngineEvent.MESSAGE_QUEUED, seen.append)

        service.enqueue({})

        assert seen == []


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(service):
    await service.start()
    await service.start()
    await service.stop()
    await service.stop()

    assert not service.running

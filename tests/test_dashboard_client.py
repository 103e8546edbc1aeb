"""Dashboard client behaviour against an in-memory channel."""

from __future__ import annotations

import asyncio
import random
from typing import List, Optional

import pytest

from app.schemas import ChangeEvent, FillLevelUpdateEvent, InitialDataEvent
from dashboard.client import ConnectionState, DashboardClient, run_dashboard
from dashboard.reconnect import ReconnectPolicy
from dashboard.views import DashboardSettings, DashboardView
from datastore.bins import default_fleet
from errors import ChannelError


class FakeChannel:
    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, item) -> None:
        self.queue.put_nowait(item)

    async def receive(self) -> ChangeEvent:
        item = await self.queue.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class FakeChannelFactory:
    def __init__(self, fail: bool = False, initial: Optional[List[ChangeEvent]] = None) -> None:
        self.fail = fail
        self.initial = initial or []
        self.calls = 0
        self.channels: List[FakeChannel] = []

    async def __call__(self) -> FakeChannel:
        self.calls += 1
        if self.fail:
            raise ChannelError("connection refused")
        channel = FakeChannel()
        for event in self.initial:
            channel.push(event)
        self.channels.append(channel)
        return channel


def _snapshot() -> InitialDataEvent:
    return InitialDataEvent(bins=default_fleet())


def _client(factory: FakeChannelFactory, renders: list, **policy) -> DashboardClient:
    return DashboardClient(
        factory,
        settings=DashboardSettings(alert_threshold=85),
        policy=ReconnectPolicy(delay=policy.get("delay", 0.01), max_attempts=policy.get("max_attempts", 3)),
        on_render=renders.append,
        rng=random.Random(0),
    )


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


async def _await_reconnects(client: DashboardClient) -> None:
    while client.pending_reconnect is not None:
        await client.pending_reconnect


def test_snapshot_replaces_mirror_and_renders() -> None:
    factory = FakeChannelFactory()
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        assert client.connected
        factory.channels[0].push(_snapshot())
        await _drain()
        await client.close()

    asyncio.run(scenario())

    assert len(renders) == 1
    assert [card.bin_id for card in renders[0].cards] == [1, 2, 3, 4, 5, 6]
    assert client.view is renders[0]


def test_events_before_snapshot_are_ignored() -> None:
    factory = FakeChannelFactory()
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        channel = factory.channels[0]
        channel.push(FillLevelUpdateEvent(bin_id=1, fill_level=99))
        await _drain()
        assert len(client.mirror) == 0
        assert renders == []

        channel.push(_snapshot())
        channel.push(FillLevelUpdateEvent(bin_id=1, fill_level=99))
        channel.push(FillLevelUpdateEvent(bin_id=1, fill_level=99))
        await _drain()
        await client.close()

    asyncio.run(scenario())

    assert len(renders) == 2
    assert client.mirror.get(1).fill_level == 99
    assert renders[-1].card(1).fill_level == 99


def test_failed_connects_exhaust_policy_then_online_signal_recovers() -> None:
    factory = FakeChannelFactory(fail=True)
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        await _await_reconnects(client)

        assert factory.calls == 4
        assert client.policy.exhausted
        assert client.state is ConnectionState.disconnected
        assert client.pending_reconnect is None
        # Offline mode fills the empty mirror with demo data.
        assert len(client.mirror) == 6
        assert renders

        factory.fail = False
        assert await client.notify_online() is True
        assert client.policy.attempts == 0
        factory.channels[0].push(_snapshot())
        await _drain()
        await client.close()

    asyncio.run(scenario())

    assert factory.calls == 5
    assert [card.fill_level for card in client.view.cards] == [45, 72, 28, 89, 61, 15]


def test_lost_channel_schedules_reconnect_and_keeps_mirror() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        await _drain()
        first = factory.channels[0]
        first.push(ChannelError("dropped"))
        await _drain()

        assert client.state is ConnectionState.disconnected
        assert first.closed
        assert client.pending_reconnect is not None
        assert client.policy.attempts == 1
        assert len(client.mirror) == 6

        await _await_reconnects(client)
        assert client.connected
        await _drain()
        assert client.policy.attempts == 0
        await client.close()

    asyncio.run(scenario())

    assert factory.calls == 2


def test_offline_refresh_simulates_drift() -> None:
    factory = FakeChannelFactory(fail=True)
    renders: List[DashboardView] = []
    client = _client(factory, renders, max_attempts=0)

    async def scenario() -> None:
        await client.start()
        before = len(renders)
        await client.refresh()
        await client.refresh()
        assert len(renders) == before + 2
        await client.close()

    asyncio.run(scenario())

    assert factory.calls == 1
    assert all(0 <= card.fill_level <= 100 for card in client.view.cards)


def test_refresh_while_connected_does_not_touch_mirror() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        await _drain()
        before = client.mirror.bins
        await client.refresh()
        assert client.mirror.bins == before
        await client.close()

    asyncio.run(scenario())

    assert len(renders) == 1


def test_alert_threshold_change_rerenders() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    renders: List[DashboardView] = []
    client = _client(factory, renders)

    async def scenario() -> None:
        await client.start()
        await _drain()
        client.update_alert_threshold(60)
        with pytest.raises(ValueError):
            client.update_alert_threshold(101)
        await client.close()

    asyncio.run(scenario())

    assert renders[0].stats.over_threshold == 1
    assert renders[-1].stats.over_threshold == 3
    assert client.settings.alert_threshold == 60


def test_refresh_interval_change_restarts_timer() -> None:
    factory = FakeChannelFactory(fail=True)
    renders: List[DashboardView] = []
    client = _client(factory, renders, max_attempts=0)

    async def scenario() -> int:
        await client.start()
        settled = len(renders)
        client.update_refresh_interval(0.01)
        await asyncio.sleep(0.1)
        await client.close()
        return settled

    settled = asyncio.run(scenario())

    assert client.settings.refresh_interval == 0.01
    assert len(renders) > settled


def test_close_tears_everything_down() -> None:
    factory = FakeChannelFactory(fail=True)
    renders: List[DashboardView] = []
    client = _client(factory, renders, delay=0.05)

    async def scenario() -> None:
        await client.start()
        assert client.pending_reconnect is not None
        await client.close()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert factory.calls == 1
    assert client.pending_reconnect is None
    assert client.state is ConnectionState.disconnected


def test_close_closes_open_channel() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    client = _client(factory, [])

    async def scenario() -> None:
        await client.start()
        await _drain()
        await client.close()

    asyncio.run(scenario())

    assert factory.channels[0].closed
    assert not client.connected


def test_run_dashboard_returns_last_view() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    renders: List[DashboardView] = []

    view = asyncio.run(run_dashboard(factory, on_render=renders.append, duration=0.05))

    assert renders
    assert view.stats.total_bins == 6
    assert factory.channels[0].closed


def test_rejected_refresh_interval_leaves_timer_and_settings_intact() -> None:
    factory = FakeChannelFactory(fail=True)
    renders: List[DashboardView] = []
    client = _client(factory, renders, max_attempts=0)

    async def scenario() -> tuple:
        await client.start()
        with pytest.raises(ValueError):
            client.update_refresh_interval(0)
        outcome = (client.settings.refresh_interval, client._refresh.running)
        await client.close()
        return outcome

    assert asyncio.run(scenario()) == (60.0, True)


def test_state_changes_are_reported_in_order() -> None:
    factory = FakeChannelFactory(initial=[_snapshot()])
    states: List[ConnectionState] = []
    client = DashboardClient(
        factory,
        policy=ReconnectPolicy(delay=0.01),
        on_state_change=states.append,
    )

    async def scenario() -> None:
        await client.start()
        await _drain()
        factory.channels[0].push(ChannelError("dropped"))
        await _drain()
        await client.close()

    asyncio.run(scenario())

    assert states == [
        ConnectionState.connecting,
        ConnectionState.connected,
        ConnectionState.disconnected,
    ]

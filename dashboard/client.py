"""Dashboard session: mirrors server state and re-renders on every change."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from enum import Enum
from typing import Callable, Optional

from app.schemas import ChangeEvent, InitialDataEvent
from dashboard.channel import Channel, ChannelFactory
from dashboard.mirror import BinMirror, demo_fleet
from dashboard.reconnect import ReconnectPolicy
from dashboard.views import DashboardSettings, DashboardView, derive_view
from errors import ChannelError
from services.scheduling import PeriodicTask, schedule_once

logger = logging.getLogger(__name__)

RenderCallback = Callable[[DashboardView], None]
StateCallback = Callable[["ConnectionState"], None]


class ConnectionState(str, Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class DashboardClient:
    """Keeps one dashboard's mirror consistent with the realtime channel.

    While connected the mirror only changes through channel events, starting
    with the ``initial_data`` snapshot. While disconnected, refresh ticks run
    a local simulation so the view stays live, and ``policy`` decides when
    to try the channel again.
    """

    def __init__(
        self,
        open_channel: ChannelFactory,
        settings: Optional[DashboardSettings] = None,
        policy: Optional[ReconnectPolicy] = None,
        on_render: Optional[RenderCallback] = None,
        rng: Optional[random.Random] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self.settings = settings or DashboardSettings()
        self.policy = policy or ReconnectPolicy()
        self.mirror = BinMirror()
        self.state = ConnectionState.disconnected
        self.view = derive_view([], self.settings)
        self._open_channel = open_channel
        self._on_render = on_render
        self._on_state_change = on_state_change
        self._rng = rng or random.Random()
        self._channel: Optional[Channel] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._reconnect: Optional[asyncio.Task[None]] = None
        self._refresh = PeriodicTask("dashboard-refresh", self.settings.refresh_interval, self.refresh)
        self._awaiting_snapshot = False
        self._closed = False

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.connected

    @property
    def pending_reconnect(self) -> Optional[asyncio.Task[None]]:
        if self._reconnect is None or self._reconnect.done():
            return None
        return self._reconnect

    async def start(self) -> None:
        self._closed = False
        self._refresh.start()
        await self.connect()

    async def connect(self) -> bool:
        if self.state is not ConnectionState.disconnected:
            return self.connected

        self._set_state(ConnectionState.connecting)
        try:
            channel = await self._open_channel()
        except (ChannelError, OSError) as exc:
            logger.warning(
                "Realtime channel unavailable",
                extra={"reason": str(exc), "attempt": self.policy.attempts},
            )
            self._handle_disconnect()
            return False

        self._channel = channel
        self._awaiting_snapshot = True
        self._set_state(ConnectionState.connected)
        self._reader = asyncio.get_running_loop().create_task(
            self._read_events(channel), name="dashboard-reader"
        )
        return True

    def handle_event(self, event: ChangeEvent) -> bool:
        """Merge one channel event; returns True when the view was re-rendered."""
        if not self.connected:
            return False
        if self._awaiting_snapshot:
            if not isinstance(event, InitialDataEvent):
                logger.debug("Ignoring event received before snapshot", extra={"event_type": event.type})
                return False
            self._awaiting_snapshot = False
            self.policy.reset()

        if not self.mirror.apply(event):
            return False
        self.render()
        return True

    async def refresh(self) -> None:
        """One refresh tick; only does work while offline."""
        if self.state is not ConnectionState.disconnected:
            return
        self.mirror.simulate_drift(self._rng)
        self.render()

    def render(self) -> DashboardView:
        self.view = derive_view(self.mirror.bins, self.settings)
        if self._on_render is not None:
            self._on_render(self.view)
        return self.view

    def update_alert_threshold(self, threshold: int) -> None:
        if not 0 <= threshold <= 100:
            raise ValueError("alert threshold must be between 0 and 100")
        self.settings.alert_threshold = threshold
        self.render()

    def update_refresh_interval(self, seconds: float) -> None:
        # Raises before anything changes when ``seconds`` is not positive.
        replacement = PeriodicTask("dashboard-refresh", seconds, self.refresh)
        was_running = self._refresh.running
        self._refresh.cancel()
        self._refresh = replacement
        self.settings.refresh_interval = seconds
        if was_running:
            self._refresh.start()

    async def notify_online(self) -> bool:
        """External connectivity signal: forget past failures and retry now."""
        if self.state is not ConnectionState.disconnected:
            return self.connected
        self._cancel_reconnect()
        self.policy.reset()
        return await self.connect()

    async def close(self) -> None:
        self._closed = True
        await self._refresh.stop()
        self._cancel_reconnect()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        await self._close_channel()
        self._set_state(ConnectionState.disconnected)

    async def _read_events(self, channel: Channel) -> None:
        try:
            while True:
                event = await channel.receive()
                self.handle_event(event)
        except (ChannelError, OSError) as exc:
            logger.warning("Realtime channel lost", extra={"reason": str(exc)})

        if self._channel is channel and not self._closed:
            await self._close_channel()
            self._handle_disconnect()

    def _handle_disconnect(self) -> None:
        self._set_state(ConnectionState.disconnected)
        if self._closed:
            return
        self._enter_offline_mode()

        delay = self.policy.next_delay()
        if delay is None:
            logger.warning(
                "Reconnect attempts exhausted; staying offline",
                extra={"attempt": self.policy.attempts},
            )
            return
        logger.info(
            "Scheduling reconnect",
            extra={"attempt": self.policy.attempts, "reason": f"retry in {delay}s"},
        )
        self._reconnect = schedule_once(delay, self.connect, name="dashboard-reconnect")

    def _enter_offline_mode(self) -> None:
        if not len(self.mirror):
            logger.info("Loading demo data for offline mode")
            self.mirror.replace_all(demo_fleet(self._rng))
        self.render()

    def _cancel_reconnect(self) -> None:
        task, self._reconnect = self._reconnect, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _close_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            await channel.close()
        except (ChannelError, OSError) as exc:
            logger.debug("Error while closing realtime channel", extra={"reason": str(exc)})

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        logger.info("Dashboard connection state changed", extra={"state": state.value})
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)


async def run_dashboard(
    open_channel: ChannelFactory,
    settings: Optional[DashboardSettings] = None,
    on_render: Optional[RenderCallback] = None,
    duration: Optional[float] = None,
    on_state_change: Optional[StateCallback] = None,
) -> DashboardView:
    """Run a dashboard session for ``duration`` seconds, or until cancelled."""
    client = DashboardClient(
        open_channel,
        settings=settings,
        on_render=on_render,
        on_state_change=on_state_change,
    )
    await client.start()
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        await client.close()
    return client.view

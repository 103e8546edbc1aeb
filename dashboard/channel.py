"""Transport for the realtime channel as seen from a dashboard."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from app.schemas import ChangeEvent, parse_event
from errors import ChannelError

logger = logging.getLogger(__name__)


class Channel(Protocol):
    async def receive(self) -> ChangeEvent:
        """Return the next event; raise :class:`ChannelError` once closed."""
        ...

    async def close(self) -> None: ...


ChannelFactory = Callable[[], Awaitable[Channel]]


class WebSocketChannel:
    """Reads change events from the server's ``/ws`` endpoint."""

    def __init__(self, connection) -> None:
        self._connection = connection

    @classmethod
    async def open(cls, url: str, timeout: float = 10.0) -> "WebSocketChannel":
        try:
            connection = await websockets.connect(url, open_timeout=timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise ChannelError(f"Could not open realtime channel {url}: {exc}") from exc
        return cls(connection)

    async def receive(self) -> ChangeEvent:
        while True:
            try:
                raw = await self._connection.recv()
            except ConnectionClosed as exc:
                raise ChannelError("Realtime channel closed.") from exc
            try:
                return parse_event(json.loads(raw))
            except ValueError as exc:
                logger.warning("Ignoring malformed channel message", extra={"reason": str(exc)[:200]})

    async def close(self) -> None:
        await self._connection.close()


def websocket_channel_factory(url: str, timeout: float = 10.0) -> ChannelFactory:
    async def _open() -> Channel:
        return await WebSocketChannel.open(url, timeout=timeout)

    return _open

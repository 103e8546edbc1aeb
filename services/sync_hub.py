"""Fan-out of bin change events to connected dashboard sessions."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Protocol

from app.schemas import ChangeEvent, InitialDataEvent, dump_event
from datastore.bins import BinStore, build_default_bin_store
from errors import ChannelError
from settings import get_settings

logger = logging.getLogger(__name__)


class Session(Protocol):
    """Anything that can push a JSON payload to one dashboard."""

    async def send_json(self, data: Any) -> None: ...


class SyncHub:
    """Tracks live sessions and broadcasts change events to all of them.

    Delivery is best effort and at most once. Each send is bounded by
    ``send_timeout``; a session that fails or stalls is dropped, and sessions
    joining later never see earlier events.
    """

    def __init__(self, store: BinStore, send_timeout: float = 5.0) -> None:
        self.store = store
        self.send_timeout = send_timeout
        self._sessions: Dict[int, Session] = {}
        self._delivery_lock = asyncio.Lock()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def connect(self, session: Session) -> InitialDataEvent:
        """Send the current snapshot to ``session`` and start delivering to it."""
        async with self._delivery_lock:
            snapshot = InitialDataEvent(bins=self.store.list_all())
            try:
                await self._send(session, dump_event(snapshot))
            except asyncio.TimeoutError as exc:
                raise ChannelError("Timed out sending the initial snapshot.") from exc
            self._sessions[id(session)] = session
        logger.info(
            "Dashboard session connected",
            extra={"session_count": self.session_count},
        )
        return snapshot

    def disconnect(self, session: Session) -> None:
        if self._sessions.pop(id(session), None) is not None:
            logger.info(
                "Dashboard session disconnected",
                extra={"session_count": self.session_count},
            )

    async def broadcast(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every connected session; returns deliveries made."""
        payload = dump_event(event)
        delivered = 0
        async with self._delivery_lock:
            targets = list(self._sessions.items())
            results = await asyncio.gather(
                *(self._send(session, payload) for _, session in targets),
                return_exceptions=True,
            )
            for (key, _), result in zip(targets, results):
                if isinstance(result, BaseException):
                    self._sessions.pop(key, None)
                    logger.warning(
                        "Dropping session after failed delivery",
                        extra={
                            "event_type": event.type,
                            "reason": str(result) or type(result).__name__,
                        },
                    )
                    continue
                delivered += 1
        logger.debug(
            "Broadcast change event",
            extra={"event_type": event.type, "session_count": delivered},
        )
        return delivered

    async def _send(self, session: Session, payload: Any) -> None:
        await asyncio.wait_for(session.send_json(payload), timeout=self.send_timeout)


@lru_cache
def build_default_hub() -> SyncHub:
    return SyncHub(
        store=build_default_bin_store(),
        send_timeout=get_settings().broadcast_timeout,
    )

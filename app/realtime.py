"""Realtime channel carrying bin change events to dashboards."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.schemas import InitialDataEvent, parse_event
from errors import ChannelError
from services.sync_hub import SyncHub, build_default_hub

logger = logging.getLogger(__name__)

router = APIRouter()


def get_hub() -> SyncHub:
    return build_default_hub()


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket, hub: SyncHub = Depends(get_hub)) -> None:
    """Send ``initial_data`` on connect, then relay every broadcast.

    Change events sent by a client are re-broadcast to all sessions
    unchanged. Snapshots are only ever produced by the hub itself.
    """
    await websocket.accept()
    try:
        await hub.connect(websocket)
        while True:
            raw = await websocket.receive_text()
            try:
                event = parse_event(json.loads(raw))
            except ValueError as exc:
                logger.warning("Ignoring malformed channel message", extra={"reason": str(exc)[:200]})
                continue
            if isinstance(event, InitialDataEvent):
                logger.warning(
                    "Ignoring client supplied snapshot", extra={"event_type": event.type}
                )
                continue
            await hub.broadcast(event)
    except WebSocketDisconnect:
        logger.debug("Realtime channel closed by client")
    except ChannelError as exc:
        logger.warning("Realtime session abandoned", extra={"reason": str(exc)})
    finally:
        hub.disconnect(websocket)

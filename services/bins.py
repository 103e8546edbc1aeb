"""Bin mutations that propagate to every dashboard after they are stored."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping

from app.schemas import (
    Bin,
    BinAddedEvent,
    BinDeletedEvent,
    BinUpdatedEvent,
    SensorStatus,
    utcnow,
)
from datastore.bins import BinStore, build_default_bin_store
from errors import ValidationError
from services.sync_hub import SyncHub, build_default_hub

logger = logging.getLogger(__name__)


class BinService:
    """Coordinates store writes and change broadcasts for the REST surface.

    The store write always completes before the corresponding event is
    broadcast; a failed write broadcasts nothing.
    """

    def __init__(self, store: BinStore, hub: SyncHub) -> None:
        self.store = store
        self.hub = hub

    def list_bins(self) -> list[Bin]:
        return self.store.list_all()

    def get_bin(self, bin_id: int) -> Bin:
        return self.store.get_by_id(bin_id)

    async def create_bin(self, bin_id: int, location: str, capacity: int = 100) -> Bin:
        if not bin_id or not location or not location.strip():
            raise ValidationError("binId and location are required.")

        now = utcnow()
        created = self.store.insert(
            Bin(
                bin_id=bin_id,
                location=location.strip(),
                capacity=capacity,
                fill_level=0,
                battery_level=100,
                temperature=20,
                sensor_status=SensorStatus.active,
                last_emptied=now,
                last_updated=now,
            )
        )
        logger.info("Bin created", extra={"bin_id": bin_id})
        await self.hub.broadcast(BinAddedEvent(bin=created))
        return created

    async def update_bin(self, bin_id: int, changes: Mapping[str, Any]) -> Bin:
        updated = self.store.update_by_id(bin_id, changes)
        logger.info(
            "Bin updated",
            extra={"bin_id": bin_id, "fill_level": updated.fill_level},
        )
        await self.hub.broadcast(BinUpdatedEvent(bin=updated))
        return updated

    async def delete_bin(self, bin_id: int) -> None:
        self.store.delete_by_id(bin_id)
        logger.info("Bin deleted", extra={"bin_id": bin_id})
        await self.hub.broadcast(BinDeletedEvent(bin_id=bin_id))


@lru_cache
def build_default_bin_service() -> BinService:
    """Factory that wires the service with the shared store and hub."""
    return BinService(store=build_default_bin_store(), hub=build_default_hub())

"""Sensor drift emulation for fleets without real hardware."""

from __future__ import annotations

import logging
import random
from functools import lru_cache
from typing import Optional

from app.schemas import FillLevelUpdateEvent, clamp_level
from datastore.bins import BinStore, build_default_bin_store
from errors import NotFoundError, TransientStoreError
from services.scheduling import PeriodicTask
from services.sync_hub import SyncHub, build_default_hub
from settings import get_settings

logger = logging.getLogger(__name__)

MAX_FILL_DRIFT = 2.5


def drift_fill_level(fill_level: int, rng: random.Random, spread: float) -> int:
    """Random-walk a fill level by up to ``spread`` points, clamped to 0-100."""
    return clamp_level(fill_level + rng.uniform(-spread, spread))


class StateSimulator:
    """Every period, nudges one random bin's fill level and broadcasts it."""

    def __init__(
        self,
        store: BinStore,
        hub: SyncHub,
        interval: float = 30.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.hub = hub
        self.rng = rng or random.Random()
        self._task = PeriodicTask("state-simulator", interval, self.tick)

    @property
    def interval(self) -> float:
        return self._task.interval

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def tick(self) -> Optional[FillLevelUpdateEvent]:
        bins = self.store.list_all()
        if not bins:
            return None

        target = self.rng.choice(bins)
        new_level = drift_fill_level(target.fill_level, self.rng, MAX_FILL_DRIFT)
        try:
            self.store.update_by_id(target.bin_id, {"fill_level": new_level})
        except (TransientStoreError, NotFoundError) as exc:
            logger.error(
                "Skipping simulator tick",
                extra={"bin_id": target.bin_id, "reason": str(exc)},
            )
            return None

        event = FillLevelUpdateEvent(bin_id=target.bin_id, fill_level=new_level)
        await self.hub.broadcast(event)
        logger.debug(
            "Simulated fill level drift",
            extra={"bin_id": target.bin_id, "fill_level": new_level},
        )
        return event


@lru_cache
def build_default_simulator() -> StateSimulator:
    settings = get_settings()
    return StateSimulator(
        store=build_default_bin_store(),
        hub=build_default_hub(),
        interval=settings.simulator_interval,
    )

"""Client-local copy of bin state kept in step with change events."""

from __future__ import annotations

import random
from typing import Any, Dict, Iterable, Mapping, Optional

from app.schemas import (
    Bin,
    BinAddedEvent,
    BinDeletedEvent,
    BinUpdatedEvent,
    ChangeEvent,
    FillLevelUpdateEvent,
    InitialDataEvent,
    clamp_level,
    utcnow,
)
from datastore.bins import default_fleet

LOCAL_FILL_DRIFT = 1.5
BATTERY_DRAIN_CHANCE = 0.1
BATTERY_FLOOR = 20


class BinMirror:
    """Bins keyed by ``bin_id``; :attr:`bins` is always ordered by id."""

    def __init__(self, bins: Iterable[Bin] = ()) -> None:
        self._bins: Dict[int, Bin] = {}
        self.replace_all(bins)

    def __len__(self) -> int:
        return len(self._bins)

    def __contains__(self, bin_id: object) -> bool:
        return bin_id in self._bins

    @property
    def bins(self) -> list[Bin]:
        return [self._bins[bin_id] for bin_id in sorted(self._bins)]

    def get(self, bin_id: int) -> Optional[Bin]:
        return self._bins.get(bin_id)

    def replace_all(self, bins: Iterable[Bin]) -> None:
        self._bins = {item.bin_id: item.model_copy(deep=True) for item in bins}

    def apply(self, event: ChangeEvent) -> bool:
        """Merge ``event`` into the mirror; returns True when state changed."""
        if isinstance(event, InitialDataEvent):
            self.replace_all(event.bins)
            return True
        if isinstance(event, BinAddedEvent):
            if event.bin.bin_id in self._bins:
                return False
            self._bins[event.bin.bin_id] = event.bin.model_copy(deep=True)
            return True
        if isinstance(event, BinUpdatedEvent):
            return self._merge(event.bin.bin_id, event.changes())
        if isinstance(event, FillLevelUpdateEvent):
            return self._merge(event.bin_id, event.changes())
        if isinstance(event, BinDeletedEvent):
            return self._bins.pop(event.bin_id, None) is not None
        raise TypeError(f"Unsupported change event: {type(event).__name__}")

    def _merge(self, bin_id: int, changes: Mapping[str, Any]) -> bool:
        # Updates never create bins; an add or snapshot must come first.
        current = self._bins.get(bin_id)
        if current is None:
            return False
        merged = current.model_dump()
        merged.update({name: value for name, value in changes.items() if name != "bin_id"})
        updated = Bin.model_validate(merged)
        if updated == current:
            return False
        self._bins[bin_id] = updated
        return True

    def simulate_drift(self, rng: random.Random, spread: float = LOCAL_FILL_DRIFT) -> None:
        """Offline stand-in for sensor updates; never leaves this mirror."""
        now = utcnow()
        for bin_id, item in list(self._bins.items()):
            battery = item.battery_level
            if rng.random() < BATTERY_DRAIN_CHANCE:
                battery = max(BATTERY_FLOOR, battery - 1)
            self._bins[bin_id] = item.model_copy(
                update={
                    "fill_level": clamp_level(item.fill_level + rng.uniform(-spread, spread)),
                    "battery_level": battery,
                    "last_updated": now,
                }
            )


def demo_fleet(rng: Optional[random.Random] = None) -> list[Bin]:
    """The default fleet with jittered fill levels for offline demos."""
    rng = rng or random.Random()
    return [
        item.model_copy(
            update={"fill_level": clamp_level(item.fill_level + rng.uniform(-5.0, 5.0))}
        )
        for item in default_fleet()
    ]

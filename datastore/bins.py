from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from app.schemas import Bin, SensorStatus, utcnow
from datastore.documents import DocumentTable
from errors import ConflictError, NotFoundError
from settings import get_settings

_DAY = timedelta(days=1)

# (bin_id, location, fill, battery, temperature, status, days since emptied)
DEFAULT_FLEET = (
    (1, "Main Building - Lobby", 45, 85, 22, SensorStatus.active, 2.0),
    (2, "Cafeteria - East Wing", 72, 92, 24, SensorStatus.active, 1.0),
    (3, "Office Block - Floor 2", 28, 78, 21, SensorStatus.active, 3.0),
    (4, "Parking Garage - Level B1", 89, 67, 19, SensorStatus.warning, 0.5),
    (5, "Conference Center", 61, 90, 23, SensorStatus.active, 2.5),
    (6, "Emergency Exit - Stairwell", 15, 45, 18, SensorStatus.low_battery, 4.0),
)


def default_fleet(now: Optional[datetime] = None) -> list[Bin]:
    """Build the bootstrap fleet used to seed an empty store."""
    now = now or datetime.now(timezone.utc)
    return [
        Bin(
            bin_id=bin_id,
            location=location,
            fill_level=fill,
            battery_level=battery,
            temperature=temperature,
            sensor_status=status,
            capacity=100,
            last_emptied=now - days * _DAY,
            last_updated=now,
        )
        for bin_id, location, fill, battery, temperature, status, days in DEFAULT_FLEET
    ]


class BinStore(DocumentTable[Bin]):
    model = Bin

    def key_for(self, item: Bin) -> str:
        return str(item.bin_id)

    def list_all(self) -> list[Bin]:
        return sorted(self.scan(), key=lambda item: item.bin_id)

    def get_by_id(self, bin_id: int) -> Bin:
        item = self.get_item(str(bin_id))
        if item is None:
            raise NotFoundError(f"Bin {bin_id} not found.")
        return item

    def insert(self, item: Bin) -> Bin:
        key = self.key_for(item)
        with self._lock:
            if key in self._items:
                raise ConflictError(f"Bin with ID {item.bin_id} already exists.")
            items = dict(self._items)
            items[key] = item.model_copy(deep=True)
            self._commit(items)
        return item.model_copy(deep=True)

    def update_by_id(self, bin_id: int, fields: Mapping[str, Any]) -> Bin:
        """Apply a partial update; ``bin_id`` itself can never change."""
        key = str(bin_id)
        changes: Dict[str, Any] = {
            name: value for name, value in fields.items() if name != "bin_id"
        }
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise NotFoundError(f"Bin {bin_id} not found.")
            merged = current.model_dump()
            merged.update(changes)
            merged["last_updated"] = utcnow()
            updated = Bin.model_validate(merged)
            items = dict(self._items)
            items[key] = updated
            self._commit(items)
        return updated.model_copy(deep=True)

    def delete_by_id(self, bin_id: int) -> None:
        if not self.delete_item(str(bin_id)):
            raise NotFoundError(f"Bin {bin_id} not found.")

    def seed_defaults(self) -> int:
        """Insert the default fleet when the store is empty; returns bins added."""
        with self._lock:
            if self._items:
                return 0
            items = {self.key_for(item): item for item in default_fleet()}
            self._commit(items)
            return len(items)


@lru_cache
def build_default_bin_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> BinStore:
    settings = get_settings()
    store_path = settings.bin_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return BinStore(name=name or "bins", persistence_path=persistence)

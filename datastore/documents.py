from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from errors import TransientStoreError

ModelT = TypeVar("ModelT", bound=BaseModel)


class DocumentTable(Generic[ModelT]):
    """Keyed collection of pydantic documents mirrored to a JSON file.

    Every mutation writes the complete next state to disk before it becomes
    visible in memory, so a failed write leaves the table unchanged.
    """

    model: Type[ModelT]

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, ModelT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def key_for(self, item: ModelT) -> str:
        raise NotImplementedError

    def put_item(self, item: ModelT) -> None:
        with self._lock:
            items = dict(self._items)
            items[self.key_for(item)] = item.model_copy(deep=True)
            self._commit(items)

    def get_item(self, key: str) -> Optional[ModelT]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def delete_item(self, key: str) -> bool:
        with self._lock:
            if key not in self._items:
                return False
            items = dict(self._items)
            del items[key]
            self._commit(items)
            return True

    def scan(self) -> list[ModelT]:
        """Return deep copies of all stored documents."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _commit(self, items: Dict[str, ModelT]) -> None:
        self._persist(items)
        self._items = items

    def _persist(self, items: Dict[str, ModelT]) -> None:
        if not self.persistence_path:
            return
        payload = {
            key: item.model_dump(mode="json", by_alias=True) for key, item in items.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise TransientStoreError(
                f"Could not persist table {self.name!r}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise TransientStoreError(
                f"Could not load table {self.name!r} from {self.persistence_path}: {exc}"
            ) from exc

        for key, payload in data.items():
            self._items[key] = self.model.model_validate(payload)

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from app.schemas import UserRecord
from datastore.documents import DocumentTable
from errors import ConflictError
from settings import get_settings


class UserStore(DocumentTable[UserRecord]):
    model = UserRecord

    def key_for(self, item: UserRecord) -> str:
        return item.username

    def find(self, username: str) -> Optional[UserRecord]:
        return self.get_item(username)

    def insert(self, user: UserRecord) -> UserRecord:
        with self._lock:
            for existing in self._items.values():
                if existing.username == user.username or existing.email == user.email:
                    raise ConflictError("User with that email or username already exists.")
            items = dict(self._items)
            items[self.key_for(user)] = user.model_copy(deep=True)
            self._commit(items)
        return user.model_copy(deep=True)


@lru_cache
def build_default_user_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> UserStore:
    settings = get_settings()
    store_path = settings.user_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return UserStore(name=name or "users", persistence_path=persistence)

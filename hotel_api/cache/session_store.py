"""Session-scoped key/value storage.

Large search payloads are moved out of the request path into a store and
referenced by key (`current_search_id` points at the latest one). The same
store keeps the list of favorite hotel ids. Writes are last-write-wins.
"""

import json
import time
from typing import Protocol

from cachetools import TTLCache

from hotel_api.config import SESSION_MAX_ENTRIES, SESSION_TTL

CURRENT_SEARCH_KEY = "current_search_id"
FAVORITES_KEY = "favoriteHotels"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store; entries expire after the session TTL."""

    def __init__(self, ttl: float = SESSION_TTL, maxsize: int = SESSION_MAX_ENTRIES):
        self._data = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self):
        return len(self._data)


def encode(payload) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def payload_size(payload) -> int:
    """Size in bytes of the compact JSON encoding."""
    return len(encode(payload).encode("utf-8"))


def should_offload(size: int, threshold: int) -> bool:
    return size > threshold


def stash_search(store: KeyValueStore, payload, now: float | None = None) -> str:
    """Store a search payload and mark it as the current search.

    Returns the key it was written under (`search_<epoch ms>`).
    """
    ts = int((time.time() if now is None else now) * 1000)
    key = f"search_{ts}"
    store.set(key, encode(payload))
    store.set(CURRENT_SEARCH_KEY, key)
    return key


def load_search(store: KeyValueStore, key: str | None = None):
    """Read back a stashed search; defaults to the current one."""
    if key is None:
        key = store.get(CURRENT_SEARCH_KEY)
        if key is None:
            return None
    raw = store.get(key)
    if raw is None:
        return None
    return json.loads(raw)


def drop_search(store: KeyValueStore, key: str):
    store.delete(key)
    if store.get(CURRENT_SEARCH_KEY) == key:
        store.delete(CURRENT_SEARCH_KEY)


class FavoriteHotels:
    """Favorite hotel ids persisted as a JSON array under `favoriteHotels`."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def ids(self) -> list:
        raw = self._store.get(FAVORITES_KEY)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError:
            return []
        return ids if isinstance(ids, list) else []

    def _save(self, ids: list):
        self._store.set(FAVORITES_KEY, json.dumps(ids))

    def contains(self, hotel_id) -> bool:
        return hotel_id in self.ids()

    def add(self, hotel_id) -> list:
        ids = self.ids()
        if hotel_id not in ids:
            ids.append(hotel_id)
            self._save(ids)
        return ids

    def remove(self, hotel_id) -> list:
        ids = [i for i in self.ids() if i != hotel_id]
        self._save(ids)
        return ids

    def toggle(self, hotel_id, is_favorite: bool) -> list:
        return self.add(hotel_id) if is_favorite else self.remove(hotel_id)

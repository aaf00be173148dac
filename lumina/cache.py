# lumina/cache.py
from __future__ import annotations
import threading
import time
from typing import Any

CATEGORIES_TTL = 60
PRODUCTS_TTL = 60
SETTINGS_TTL = 300


class TTLCache:
    """
    Small in-process key/value cache with per-entry expiry.

    Keys are plain strings; invalidation works on key prefixes so that
    "products" drops "products-all" and every "products-<category>" entry.
    """

    def __init__(self, clock=time.monotonic):
        self._data: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str):
        with self._lock:
            hit = self._data.get(key)
            if hit is None:
                return None
            value, expires = hit
            if self._clock() > expires:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value, ttl: float = 30) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def get_or_set(self, key: str, loader, ttl: float = 30):
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value, ttl)
        return value

    def __len__(self):
        return len(self._data)

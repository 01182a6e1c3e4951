from __future__ import annotations

import time
from threading import Lock
from typing import Any, Dict, Tuple


class WeatherCache:
    """A lightweight TTL cache with the ``get``/``set`` surface of Django caches."""

    def __init__(self, time_func=time.monotonic) -> None:
        self._time_func = time_func
        self._storage: Dict[str, Tuple[float, Any]] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._storage.get(key)
            if not item:
                self.misses += 1
                return default
            expires_at, value = item
            if expires_at <= self._time_func():
                self._storage.pop(key, None)
                self.misses += 1
                return default
            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._storage[key] = (self._time_func() + ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"hits": self.hits, "misses": self.misses, "keys": len(self._storage)}


__all__ = ["WeatherCache"]

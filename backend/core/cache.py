"""
Dataset Cache

Short-lived in-memory cache of fetched datasets keyed by data source id,
so follow-up questions about the same source skip the store round trip.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Optional

from config import get_settings
from core.logging_config import store_logger as logger


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    LRU mapping whose entries expire a fixed time after insertion.

    Thread-safe. Expired entries are dropped lazily when touched.
    """

    def __init__(
        self,
        maxsize: int = 32,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)
            while self._entries and len(self._entries) >= self.maxsize:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value, self._clock() + self.ttl_seconds)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._entries) if self._live(key) is not None)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None


def build_dataset_cache() -> Optional[TTLCache]:
    """Dataset cache from settings, None when caching is disabled."""
    settings = get_settings().cache
    if not settings.enabled:
        return None
    logger.info(f"Dataset cache enabled (max {settings.max_size}, ttl {settings.ttl_seconds}s)")
    return TTLCache(maxsize=settings.max_size, ttl_seconds=settings.ttl_seconds)

"""
In-memory TTL cache for category metadata.

Entries expire after ``ttl_seconds``. When the cache is full the oldest 20%
of entries are evicted before the new one is stored.
"""

import logging
import math
import threading
import time
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_CACHE_ENTRIES = 1000


class MetadataCache:
    """Shared across request worker threads; every access holds ``_lock``."""

    def __init__(self, name: str, ttl_seconds: int, max_entries: int = MAX_CACHE_ENTRIES):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Tuple[Any, int]]:
        """Return (value, age in seconds) for a fresh entry, else None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            age = time.time() - stored_at
            if age >= self.ttl_seconds:
                self._entries.pop(key, None)
                return None
            return value, int(age)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[key] = (value, time.time())

    def _evict_oldest(self) -> None:
        # Caller holds the lock
        ordered = sorted(self._entries.items(), key=lambda item: item[1][1])
        to_remove = math.ceil(len(ordered) * 0.2)
        for key, _ in ordered[:to_remove]:
            self._entries.pop(key, None)
        logger.info(f"[{self.name}] Cache cleanup: removed {to_remove} entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

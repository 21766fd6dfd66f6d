"""
In-memory cache with sliding expiration, used for per-subscription lookups
"""

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class SlidingExpirationCache:
    """Entries expire after ttl_seconds without being read"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, last_access = entry
        now = self._clock()
        if now - last_access > self.ttl_seconds:
            del self._entries[key]
            return None

        self._entries[key] = (value, now)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

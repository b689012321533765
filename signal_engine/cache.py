"""In-memory TTL cache — a collaborator that lives outside the engine.

Stores ``key → (value, stored_at)``.  Expired entries are evicted lazily on
read.  The clock is injectable so expiry can be tested without sleeping.
"""

import threading
import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """Thread-safe key/value cache with a fixed time-to-live.

    Args:
        ttl_seconds: Entry lifetime.  ``0`` disables caching (every read misses).
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or ``None`` if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock())

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

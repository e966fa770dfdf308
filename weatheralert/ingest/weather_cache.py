"""Thread-safe TTL cache of weather snapshots keyed by normalized city."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from weatheralert.models.common import normalize_city
from weatheralert.models.weather import WeatherSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: WeatherSnapshot
    expires_at: float


class WeatherCache:
    """Process-wide cache instance, constructed once and injected.

    A read at or after ``expires_at`` is a miss and evicts the entry.
    Provider errors are never stored.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, city: str) -> WeatherSnapshot | None:
        key = normalize_city(city)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def put(self, city: str, snapshot: WeatherSnapshot, ttl: float | None = None) -> None:
        key = normalize_city(city)
        expires_at = self._clock() + (self.ttl_seconds if ttl is None else ttl)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=snapshot, expires_at=expires_at)

    def invalidate(self, city: str) -> bool:
        with self._lock:
            return self._entries.pop(normalize_city(city), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

"""Weather lookup: cache in front of the fetcher, with history on fresh fetches."""

import logging
from dataclasses import dataclass

from weatheralert.errors import PersistenceError
from weatheralert.ingest.weather_cache import WeatherCache
from weatheralert.ingest.weather_fetcher import WeatherFetcher
from weatheralert.models.common import normalize_city
from weatheralert.models.weather import SnapshotSource, WeatherSnapshot
from weatheralert.storage.history_repo import HistoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupResult:
    snapshot: WeatherSnapshot
    source: SnapshotSource


class WeatherLookup:
    def __init__(
        self,
        cache: WeatherCache,
        fetcher: WeatherFetcher,
        history: HistoryStore | None = None,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.history = history

    def lookup(self, city: str, location_id: int | None = None) -> LookupResult:
        """Current weather for a city.

        Cache hits return immediately. On a miss the snapshot is fetched,
        cached, and recorded against ``location_id`` when one is given.
        CityNotFound and ProviderError propagate; nothing is cached then.
        """
        key = normalize_city(city)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return LookupResult(snapshot=cached, source=SnapshotSource.CACHE)

        logger.info("Cache miss for %s, fetching from provider", key)
        snapshot = self.fetcher.fetch(key)
        self.cache.put(key, snapshot)

        if location_id is not None and self.history is not None:
            try:
                self.history.save(location_id, key, snapshot, SnapshotSource.API)
            except PersistenceError:
                logger.exception("Failed to persist weather history for %s", key)

        return LookupResult(snapshot=snapshot, source=SnapshotSource.API)

"""Weather fetcher: turns provider payloads into WeatherSnapshot values."""

import logging
from typing import Any

from weatheralert.errors import ProviderError
from weatheralert.ingest.owm_client import OpenWeatherClient
from weatheralert.models.common import normalize_city
from weatheralert.models.weather import WeatherSnapshot

logger = logging.getLogger(__name__)


class WeatherFetcher:
    def __init__(self, client: OpenWeatherClient):
        self.client = client

    def fetch(self, city: str) -> WeatherSnapshot:
        """Fetch and normalize current weather for a city.

        Raises CityNotFound for unknown cities and ProviderError for
        everything else, including incomplete payloads.
        """
        raw = self.client.get_current(city)
        return map_snapshot(raw, city)


def map_snapshot(raw: dict, city: str) -> WeatherSnapshot:
    """Map a provider payload. Never returns a partially populated snapshot."""
    main = raw.get("main")
    conditions = raw.get("weather")
    wind = raw.get("wind")
    if not isinstance(main, dict) or not isinstance(wind, dict):
        logger.error("Incomplete payload for %s: keys=%s", city, sorted(raw))
        raise ProviderError(f"Incomplete data received for {city}")
    if not isinstance(conditions, list) or not conditions or not isinstance(conditions[0], dict):
        logger.error("Missing condition list for %s", city)
        raise ProviderError(f"Incomplete data received for {city}")

    try:
        return WeatherSnapshot(
            city=normalize_city(city),
            temperature=_num(main["temp"]),
            feels_like=_num(main.get("feels_like", main["temp"])),
            min_temp=_num(main.get("temp_min", main["temp"])),
            max_temp=_num(main.get("temp_max", main["temp"])),
            pressure=_num(main.get("pressure", 0)),
            humidity=_num(main["humidity"]),
            description=str(conditions[0].get("description") or "N/A"),
            icon=str(conditions[0].get("icon") or "N/A"),
            wind_speed=_num(wind["speed"]),
            wind_deg=_num(wind.get("deg", 0)),
            cloudiness=_num((raw.get("clouds") or {}).get("all", 0)),
            rain_volume=_rain_volume(raw.get("rain")),
            provider_timestamp=int(raw.get("dt", 0)),
            provider_city_name=str(raw.get("name", "")),
            sunrise=_opt_int((raw.get("sys") or {}).get("sunrise")),
            sunset=_opt_int((raw.get("sys") or {}).get("sunset")),
            timezone_offset=_opt_int(raw.get("timezone")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.error("Malformed payload for %s: %s", city, e)
        raise ProviderError(f"Malformed data received for {city}: {e}") from e


def _num(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"expected number, got {value!r}")
    return float(value)


def _opt_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _rain_volume(rain: Any) -> float:
    """Rain over the last hour, else the last three hours, else 0."""
    if not isinstance(rain, dict):
        return 0.0
    for key in ("1h", "3h"):
        value = rain.get(key)
        if isinstance(value, int | float) and not isinstance(value, bool) and value > 0:
            return float(value)
    return 0.0

"""Weather snapshot and history models."""

from dataclasses import asdict, dataclass
from enum import StrEnum


class SnapshotSource(StrEnum):
    API = "api"      # fresh provider fetch
    CACHE = "cache"  # served from the weather cache


@dataclass(frozen=True)
class WeatherSnapshot:
    city: str  # normalized, lowercase
    temperature: float  # Celsius
    feels_like: float
    min_temp: float
    max_temp: float
    pressure: float  # hPa
    humidity: float  # 0-100
    description: str
    icon: str
    wind_speed: float  # m/s
    wind_deg: float
    cloudiness: float  # %
    rain_volume: float  # mm over the last 1-3h
    provider_timestamp: int
    provider_city_name: str
    sunrise: int | None = None
    sunset: int | None = None
    timezone_offset: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "WeatherSnapshot":
        return cls(**data)


@dataclass(frozen=True)
class HistoryRecord:
    id: int
    location_id: int
    city: str
    logged_at: str
    snapshot: WeatherSnapshot
    source: SnapshotSource

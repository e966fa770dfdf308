"""Shared test fixtures."""

import sqlite3
from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from weatheralert.config.schema import AppConfig
from weatheralert.models.weather import WeatherSnapshot
from weatheralert.storage.database import connect, run_migrations

BASE_SNAPSHOT = WeatherSnapshot(
    city="london",
    temperature=12.5,
    feels_like=11.0,
    min_temp=10.0,
    max_temp=14.0,
    pressure=1012.0,
    humidity=70.0,
    description="scattered clouds",
    icon="03d",
    wind_speed=4.1,
    wind_deg=250.0,
    cloudiness=40.0,
    rain_volume=0.0,
    provider_timestamp=1760868000,
    provider_city_name="London",
    sunrise=1760854000,
    sunset=1760892000,
    timezone_offset=3600,
)


def make_snapshot(**overrides) -> WeatherSnapshot:
    return replace(BASE_SNAPSHOT, **overrides)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "test.db"
    conn = connect(path)
    run_migrations(conn)
    conn.close()
    return path


@pytest.fixture
def db(db_path: Path) -> sqlite3.Connection:
    conn = connect(db_path)
    yield conn
    conn.close()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def owm_payload() -> dict:
    """Current-weather payload as returned by the provider (metric units)."""
    return {
        "coord": {"lon": -0.1257, "lat": 51.5085},
        "weather": [
            {"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}
        ],
        "main": {
            "temp": 14.2,
            "feels_like": 13.6,
            "temp_min": 12.9,
            "temp_max": 15.3,
            "pressure": 1008,
            "humidity": 82,
        },
        "wind": {"speed": 6.2, "deg": 230},
        "clouds": {"all": 90},
        "rain": {"1h": 0.45},
        "dt": 1760868000,
        "sys": {"sunrise": 1760854000, "sunset": 1760892000},
        "timezone": 3600,
        "name": "London",
        "cod": 200,
    }


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    data = {
        "cache": {"ttl_seconds": 300},
        "alerts": {"cooldown_minutes": 30},
        "notifier": {"mode": "dry-run"},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def snapshot_factory():
    """Build snapshots from a realistic base, overriding selected fields."""
    return make_snapshot

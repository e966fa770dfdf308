"""Tests for payload mapping in the weather fetcher."""

from unittest.mock import MagicMock

import pytest

from weatheralert.errors import CityNotFound, ProviderError
from weatheralert.ingest.weather_fetcher import WeatherFetcher, map_snapshot


class TestMapSnapshot:
    def test_full_payload(self, owm_payload: dict):
        snap = map_snapshot(owm_payload, "  London ")
        assert snap.city == "london"
        assert snap.temperature == 14.2
        assert snap.feels_like == 13.6
        assert snap.min_temp == 12.9
        assert snap.max_temp == 15.3
        assert snap.pressure == 1008.0
        assert snap.humidity == 82.0
        assert snap.description == "light rain"
        assert snap.icon == "10d"
        assert snap.wind_speed == 6.2
        assert snap.wind_deg == 230.0
        assert snap.cloudiness == 90.0
        assert snap.rain_volume == 0.45
        assert snap.provider_timestamp == 1760868000
        assert snap.provider_city_name == "London"
        assert snap.sunrise == 1760854000
        assert snap.timezone_offset == 3600

    def test_rain_falls_back_to_three_hours(self, owm_payload: dict):
        owm_payload["rain"] = {"3h": 1.2}
        assert map_snapshot(owm_payload, "london").rain_volume == 1.2

    def test_no_rain_block(self, owm_payload: dict):
        del owm_payload["rain"]
        assert map_snapshot(owm_payload, "london").rain_volume == 0.0

    def test_missing_optional_blocks(self, owm_payload: dict):
        del owm_payload["clouds"]
        del owm_payload["sys"]
        del owm_payload["timezone"]
        snap = map_snapshot(owm_payload, "london")
        assert snap.cloudiness == 0.0
        assert snap.sunrise is None
        assert snap.timezone_offset is None

    @pytest.mark.parametrize("block", ["main", "wind", "weather"])
    def test_missing_required_block(self, owm_payload: dict, block: str):
        del owm_payload[block]
        with pytest.raises(ProviderError, match="Incomplete"):
            map_snapshot(owm_payload, "london")

    def test_empty_condition_list(self, owm_payload: dict):
        owm_payload["weather"] = []
        with pytest.raises(ProviderError):
            map_snapshot(owm_payload, "london")

    def test_non_numeric_temperature(self, owm_payload: dict):
        owm_payload["main"]["temp"] = "warm"
        with pytest.raises(ProviderError, match="Malformed"):
            map_snapshot(owm_payload, "london")

    def test_missing_humidity(self, owm_payload: dict):
        del owm_payload["main"]["humidity"]
        with pytest.raises(ProviderError):
            map_snapshot(owm_payload, "london")


class TestWeatherFetcher:
    def test_fetch_maps_client_payload(self, owm_payload: dict):
        client = MagicMock()
        client.get_current.return_value = owm_payload

        snap = WeatherFetcher(client).fetch("london")
        client.get_current.assert_called_once_with("london")
        assert snap.temperature == 14.2

    def test_city_not_found_propagates(self):
        client = MagicMock()
        client.get_current.side_effect = CityNotFound("atlantis")

        with pytest.raises(CityNotFound):
            WeatherFetcher(client).fetch("atlantis")

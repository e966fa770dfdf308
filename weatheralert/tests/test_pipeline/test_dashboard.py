"""Tests for the read-only dashboard API."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from weatheralert.errors import CityNotFound, ProviderError
from weatheralert.ingest.weather_cache import WeatherCache
from weatheralert.ingest.weather_lookup import WeatherLookup
from weatheralert.models.weather import SnapshotSource
from weatheralert.storage import location_repo, user_repo
from weatheralert.storage.history_repo import HistoryStore, get_history, save_history


class StubFetcher:
    def __init__(self, snapshot):
        self.snapshot = snapshot

    def fetch(self, city: str):
        if city == "atlantis":
            raise CityNotFound(city)
        if city == "nowhere":
            raise ProviderError("HTTP 503", 503)
        return self.snapshot


@pytest.fixture
def client(monkeypatch, tmp_path: Path, app_config, db_path, snapshot_factory):
    # the module builds a default app on import
    monkeypatch.setenv("WEATHERALERT_DB", str(tmp_path / "import.db"))
    monkeypatch.setenv("WEATHERALERT_CONFIG", str(tmp_path / "missing.yaml"))
    from weatheralert.dashboard import create_app

    lookup = WeatherLookup(WeatherCache(), StubFetcher(snapshot_factory()), HistoryStore(db_path))
    return TestClient(create_app(app_config, db_path, lookup=lookup))


class TestDashboard:
    def test_status(self, client: TestClient):
        data = client.get("/api/status").json()
        assert data["alerts_total"] == 0
        assert data["latest_run"] is None
        assert data["cache_entries"] == 0

    def test_runs_empty(self, client: TestClient):
        assert client.get("/api/runs").json() == []

    def test_weather_then_cached(self, client: TestClient):
        first = client.get("/api/weather/London")
        assert first.status_code == 200
        assert first.json()["source"] == "api"
        assert first.json()["temperature"] == 12.5
        assert client.get("/api/weather/london").json()["source"] == "cache"

    def test_weather_unknown_city(self, client: TestClient):
        assert client.get("/api/weather/atlantis").status_code == 404

    def test_weather_provider_error(self, client: TestClient):
        assert client.get("/api/weather/nowhere").status_code == 502

    def test_history(self, client: TestClient, db_path, snapshot_factory):
        HistoryStore(db_path).save(4, "london", snapshot_factory(), SnapshotSource.API)
        now = datetime.now(UTC)
        resp = client.get(
            "/api/history/4",
            params={
                "start": (now - timedelta(hours=1)).isoformat(),
                "end": (now + timedelta(hours=1)).isoformat(),
            },
        )
        assert resp.status_code == 200
        rows = resp.json()
        assert len(rows) == 1
        assert rows[0]["source"] == "api"
        assert rows[0]["data"]["city"] == "london"

    def test_history_bad_date(self, client: TestClient):
        resp = client.get("/api/history/4", params={"start": "soon", "end": "later"})
        assert resp.status_code == 400

    def test_history_reversed_range(self, client: TestClient):
        resp = client.get(
            "/api/history/4", params={"start": "2026-10-19", "end": "2026-10-01"}
        )
        assert resp.status_code == 400

    def test_history_date_only_end_includes_that_day(
        self, client: TestClient, db, snapshot_factory
    ):
        save_history(
            db, 4, "london", snapshot_factory(), SnapshotSource.API,
            logged_at="2026-10-19T12:00:00.000000+00:00",
        )
        resp = client.get(
            "/api/history/4", params={"start": "2026-10-19", "end": "2026-10-19"}
        )
        assert resp.status_code == 200
        assert [r["logged_at"] for r in resp.json()] == ["2026-10-19T12:00:00.000000+00:00"]


class TestWeatherForLocation:
    @pytest.fixture
    def location_id(self, db) -> int:
        user = user_repo.create_user(db, "ana@example.com", "Ana")
        return location_repo.create_location(db, user.id, "Home", "London").id

    def _history(self, db, location_id: int):
        return get_history(
            db, location_id, datetime(2000, 1, 1, tzinfo=UTC), datetime(2100, 1, 1, tzinfo=UTC)
        )

    def test_logs_history_for_matching_location(self, client: TestClient, db, location_id):
        resp = client.get("/api/weather/London", params={"location_id": location_id})
        assert resp.status_code == 200
        assert len(self._history(db, location_id)) == 1

    def test_unknown_location(self, client: TestClient, db):
        resp = client.get("/api/weather/London", params={"location_id": 999})
        assert resp.status_code == 404
        assert self._history(db, 999) == []

    def test_location_for_other_city(self, client: TestClient, db, location_id):
        resp = client.get("/api/weather/Paris", params={"location_id": location_id})
        assert resp.status_code == 400
        assert self._history(db, location_id) == []

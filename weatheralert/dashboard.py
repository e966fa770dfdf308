"""Read-only ops dashboard: run status, current weather and history lookups.

    uvicorn weatheralert.dashboard:app
"""

import os
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException

from weatheralert.config.loader import load_config
from weatheralert.config.schema import AppConfig
from weatheralert.errors import CityNotFound, PersistenceError, ProviderError
from weatheralert.ingest.weather_lookup import WeatherLookup
from weatheralert.models.common import normalize_city, parse_date_bound
from weatheralert.pipeline.alert_runner import build_lookup
from weatheralert.storage import location_repo, run_repo
from weatheralert.storage.database import init_db

DB_PATH = Path(os.environ.get("WEATHERALERT_DB", "data/weatheralert.db"))
CONFIG_PATH = Path(os.environ.get("WEATHERALERT_CONFIG", "configs/default.yaml"))


def create_app(
    config: AppConfig, db_path: str | Path, lookup: WeatherLookup | None = None
) -> FastAPI:
    app = FastAPI(title="Weather Alert Dashboard", version="0.1.0")
    weather = lookup or build_lookup(config, db_path)

    def _conn():
        return init_db(db_path)

    @app.get("/api/status")
    def get_status():
        """Latest run plus alert counts."""
        conn = _conn()
        try:
            enabled = conn.execute(
                "SELECT COUNT(*) FROM alerts WHERE is_enabled = 1"
            ).fetchone()[0]
            total = conn.execute("SELECT COUNT(*) FROM alerts").fetchone()[0]
            return {
                "alerts_enabled": enabled,
                "alerts_total": total,
                "cache_entries": len(weather.cache),
                "latest_run": run_repo.get_latest_run(conn),
                "timestamp": datetime.now(UTC).isoformat(),
            }
        finally:
            conn.close()

    @app.get("/api/runs")
    def get_runs(limit: int = 20):
        conn = _conn()
        try:
            return run_repo.list_runs(conn, limit)
        finally:
            conn.close()

    @app.get("/api/weather/{city}")
    def get_weather(city: str, location_id: int | None = None):
        if location_id is not None:
            conn = _conn()
            try:
                location = location_repo.get_location(conn, location_id)
            finally:
                conn.close()
            if location is None:
                raise HTTPException(404, f"Location {location_id} not found")
            if location.city != normalize_city(city):
                raise HTTPException(
                    400, f"Location {location_id} is saved for {location.city!r}"
                )
        try:
            result = weather.lookup(city, location_id)
        except CityNotFound as e:
            raise HTTPException(404, str(e)) from e
        except ProviderError as e:
            raise HTTPException(502, str(e)) from e
        return {"source": result.source.value, **result.snapshot.to_dict()}

    @app.get("/api/history/{location_id}")
    def get_history(location_id: int, start: str, end: str):
        """Logged snapshots for a saved location, oldest first."""
        try:
            start_dt = parse_date_bound(start)
            end_dt = parse_date_bound(end, end_of_day=True)
        except ValueError as e:
            raise HTTPException(400, "Invalid date format, use ISO 8601") from e
        if start_dt > end_dt:
            raise HTTPException(400, "start must not be after end")

        _conn().close()  # schema must exist before the first query
        if weather.history is None:
            raise HTTPException(503, "History store not configured")
        try:
            records = weather.history.query(location_id, start_dt, end_dt)
        except PersistenceError as e:
            raise HTTPException(500, str(e)) from e
        return [
            {
                "id": r.id,
                "location_id": r.location_id,
                "city": r.city,
                "logged_at": r.logged_at,
                "source": r.source.value,
                "data": r.snapshot.to_dict(),
            }
            for r in records
        ]

    return app


app = create_app(load_config(CONFIG_PATH), DB_PATH)

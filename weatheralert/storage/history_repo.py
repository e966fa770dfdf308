"""Repository for append-only weather history."""

import json
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path

from weatheralert.errors import PersistenceError
from weatheralert.models.common import normalize_city, to_iso, utc_now_iso
from weatheralert.models.weather import HistoryRecord, SnapshotSource, WeatherSnapshot
from weatheralert.storage.database import connect


def _row_to_record(row: sqlite3.Row) -> HistoryRecord:
    return HistoryRecord(
        id=row["id"],
        location_id=row["location_id"],
        city=row["city"],
        logged_at=row["logged_at"],
        snapshot=WeatherSnapshot.from_dict(json.loads(row["snapshot_json"])),
        source=SnapshotSource(row["source"]),
    )


def save_history(
    conn: sqlite3.Connection,
    location_id: int,
    city: str,
    snapshot: WeatherSnapshot,
    source: SnapshotSource,
    logged_at: str | None = None,
) -> int:
    """Append a snapshot for a saved location. Returns the row id."""
    cursor = conn.execute(
        "INSERT INTO weather_history "
        "(location_id, city, logged_at, provider_timestamp, snapshot_json, source) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (
            location_id,
            normalize_city(city),
            logged_at or utc_now_iso(),
            snapshot.provider_timestamp,
            json.dumps(snapshot.to_dict()),
            source.value,
        ),
    )
    conn.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


def get_history(
    conn: sqlite3.Connection, location_id: int, start: datetime, end: datetime
) -> list[HistoryRecord]:
    """Records for a location logged within [start, end], oldest first."""
    rows = conn.execute(
        "SELECT * FROM weather_history "
        "WHERE location_id = ? AND logged_at >= ? AND logged_at <= ? "
        "ORDER BY logged_at ASC, id ASC",
        (location_id, to_iso(start), to_iso(end)),
    ).fetchall()
    return [_row_to_record(r) for r in rows]


def latest_for_city(conn: sqlite3.Connection, city: str) -> HistoryRecord | None:
    row = conn.execute(
        "SELECT * FROM weather_history WHERE city = ? "
        "ORDER BY logged_at DESC, id DESC LIMIT 1",
        (normalize_city(city),),
    ).fetchone()
    if row is None:
        return None
    return _row_to_record(row)


class HistoryStore:
    """History access bound to a database file.

    Opens a short-lived connection per call so it can be shared by the
    lookup across worker threads. sqlite failures surface as
    PersistenceError.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = db_path

    def save(
        self,
        location_id: int,
        city: str,
        snapshot: WeatherSnapshot,
        source: SnapshotSource,
    ) -> int:
        try:
            with closing(connect(self.db_path)) as conn:
                return save_history(conn, location_id, city, snapshot, source)
        except sqlite3.Error as e:
            raise PersistenceError(f"History write failed for {city}: {e}") from e

    def query(
        self, location_id: int, start: datetime, end: datetime
    ) -> list[HistoryRecord]:
        if start > end:
            raise ValueError("start must not be after end")
        try:
            with closing(connect(self.db_path)) as conn:
                return get_history(conn, location_id, start, end)
        except sqlite3.Error as e:
            raise PersistenceError(
                f"History query failed for location {location_id}: {e}"
            ) from e

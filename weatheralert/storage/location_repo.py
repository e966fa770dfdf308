"""Repository for saved locations."""

import sqlite3

from weatheralert.errors import PersistenceError
from weatheralert.models.alert import SavedLocation
from weatheralert.models.common import normalize_city


def row_to_location(row: sqlite3.Row) -> SavedLocation:
    return SavedLocation(
        id=row["id"],
        user_id=row["user_id"],
        label=row["label"],
        city=row["city"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        created_at=row["created_at"],
    )


def create_location(
    conn: sqlite3.Connection,
    user_id: int,
    label: str,
    city: str,
    latitude: float | None = None,
    longitude: float | None = None,
) -> SavedLocation:
    """Save a location for a user. A user can save each city only once."""
    city_key = normalize_city(city)
    if not city_key:
        raise PersistenceError("City must not be empty")
    try:
        cursor = conn.execute(
            "INSERT INTO saved_locations (user_id, label, city, latitude, longitude) "
            "VALUES (?, ?, ?, ?, ?)",
            (user_id, label.strip(), city_key, latitude, longitude),
        )
    except sqlite3.IntegrityError as e:
        raise PersistenceError(
            f"Cannot save {city_key!r} for user {user_id}: {e}"
        ) from e
    conn.commit()
    assert cursor.lastrowid is not None
    location = get_location(conn, cursor.lastrowid)
    assert location is not None
    return location


def get_location(conn: sqlite3.Connection, location_id: int) -> SavedLocation | None:
    row = conn.execute(
        "SELECT * FROM saved_locations WHERE id = ?", (location_id,)
    ).fetchone()
    if row is None:
        return None
    return row_to_location(row)


def list_locations(conn: sqlite3.Connection, user_id: int) -> list[SavedLocation]:
    rows = conn.execute(
        "SELECT * FROM saved_locations WHERE user_id = ? ORDER BY created_at, id",
        (user_id,),
    ).fetchall()
    return [row_to_location(r) for r in rows]


def delete_location(conn: sqlite3.Connection, location_id: int) -> bool:
    """Delete a location and, by cascade, its alerts. History rows are kept."""
    cursor = conn.execute("DELETE FROM saved_locations WHERE id = ?", (location_id,))
    conn.commit()
    return cursor.rowcount > 0

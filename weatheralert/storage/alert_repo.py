"""Repository for alerts, including the runner's per-alert claim protocol.

The runner never does a blind read-modify-write of ``last_notified``. It
first claims the alert with a conditional UPDATE that only succeeds while
the alert is still enabled, unclaimed, and unchanged since it was loaded.
Whoever wins the claim sends the notification; the claim is then either
completed (``last_notified`` set) or released (left unchanged).
"""

import sqlite3
from datetime import datetime, timedelta

from weatheralert.errors import PersistenceError
from weatheralert.models.alert import (
    Alert,
    ResolvedAlert,
    SavedLocation,
    Threshold,
    User,
    parse_threshold,
    threshold_from_storage,
    threshold_to_storage,
)
from weatheralert.models.common import to_iso


def _row_to_alert(row: sqlite3.Row) -> Alert:
    return Alert(
        id=row["id"],
        user_id=row["user_id"],
        location_id=row["location_id"],
        condition=row["condition"],
        threshold=threshold_from_storage(row["threshold_kind"], row["threshold_value"]),
        is_enabled=bool(row["is_enabled"]),
        last_notified=row["last_notified"],
        created_at=row["created_at"],
    )


def create_alert(
    conn: sqlite3.Connection,
    location_id: int,
    condition: str,
    threshold: object,
) -> Alert:
    """Create an alert on a saved location, owned by the location's user.

    The threshold is validated against the condition here, so stored alerts
    always carry a threshold of the right kind.
    """
    parsed = parse_threshold(condition, threshold)
    loc = conn.execute(
        "SELECT user_id FROM saved_locations WHERE id = ?", (location_id,)
    ).fetchone()
    if loc is None:
        raise PersistenceError(f"Saved location {location_id} not found")

    kind, value = threshold_to_storage(parsed)
    duplicate = conn.execute(
        "SELECT 1 FROM alerts WHERE location_id = ? AND condition = ? "
        "AND threshold_kind = ? AND threshold_value = ?",
        (location_id, condition, kind, value),
    ).fetchone()
    if duplicate is not None:
        raise PersistenceError("An identical alert already exists for this location")

    cursor = conn.execute(
        "INSERT INTO alerts (user_id, location_id, condition, threshold_kind, threshold_value) "
        "VALUES (?, ?, ?, ?, ?)",
        (loc["user_id"], location_id, condition, kind, value),
    )
    conn.commit()
    assert cursor.lastrowid is not None
    alert = get_alert(conn, cursor.lastrowid)
    assert alert is not None
    return alert


def get_alert(conn: sqlite3.Connection, alert_id: int) -> Alert | None:
    row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
    if row is None:
        return None
    return _row_to_alert(row)


def list_alerts(conn: sqlite3.Connection, user_id: int | None = None) -> list[Alert]:
    if user_id is None:
        rows = conn.execute("SELECT * FROM alerts ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM alerts WHERE user_id = ? ORDER BY id", (user_id,)
        ).fetchall()
    return [_row_to_alert(r) for r in rows]


def set_enabled(conn: sqlite3.Connection, alert_id: int, enabled: bool) -> bool:
    cursor = conn.execute(
        "UPDATE alerts SET is_enabled = ? WHERE id = ?", (int(enabled), alert_id)
    )
    conn.commit()
    return cursor.rowcount > 0


def update_threshold(
    conn: sqlite3.Connection, alert_id: int, condition: str, threshold: object
) -> Alert:
    """Change condition and threshold together, re-validating the pair."""
    parsed: Threshold = parse_threshold(condition, threshold)
    kind, value = threshold_to_storage(parsed)
    cursor = conn.execute(
        "UPDATE alerts SET condition = ?, threshold_kind = ?, threshold_value = ? "
        "WHERE id = ?",
        (condition, kind, value, alert_id),
    )
    conn.commit()
    if cursor.rowcount == 0:
        raise PersistenceError(f"Alert {alert_id} not found")
    alert = get_alert(conn, alert_id)
    assert alert is not None
    return alert


def delete_alert(conn: sqlite3.Connection, alert_id: int) -> bool:
    cursor = conn.execute("DELETE FROM alerts WHERE id = ?", (alert_id,))
    conn.commit()
    return cursor.rowcount > 0


def list_enabled_resolved(conn: sqlite3.Connection) -> list[ResolvedAlert]:
    """Load enabled alerts joined with their user and location.

    References that no longer resolve come back as None rather than
    dropping the alert, so the caller can report them.
    """
    rows = conn.execute(
        "SELECT a.*, "
        "u.id AS u_id, u.email AS u_email, u.name AS u_name, "
        "l.id AS l_id, l.user_id AS l_user_id, l.label AS l_label, l.city AS l_city, "
        "l.latitude AS l_latitude, l.longitude AS l_longitude, l.created_at AS l_created_at "
        "FROM alerts a "
        "LEFT JOIN users u ON u.id = a.user_id "
        "LEFT JOIN saved_locations l ON l.id = a.location_id "
        "WHERE a.is_enabled = 1 ORDER BY a.id"
    ).fetchall()

    resolved = []
    for row in rows:
        user = None
        if row["u_id"] is not None:
            user = User(id=row["u_id"], email=row["u_email"], name=row["u_name"])
        location = None
        if row["l_id"] is not None:
            location = SavedLocation(
                id=row["l_id"],
                user_id=row["l_user_id"],
                label=row["l_label"],
                city=row["l_city"],
                latitude=row["l_latitude"],
                longitude=row["l_longitude"],
                created_at=row["l_created_at"],
            )
        resolved.append(ResolvedAlert(alert=_row_to_alert(row), user=user, location=location))
    return resolved


# --- Claim protocol ---

def claim_alert(
    conn: sqlite3.Connection,
    alert_id: int,
    run_id: str,
    expected_last_notified: str | None,
    now: datetime,
    claim_ttl: timedelta,
) -> bool:
    """Atomically take ownership of an alert for one notification.

    Fails when the alert was disabled or deleted, notified by someone else
    since it was loaded, or is held by a live claim. Claims older than
    ``claim_ttl`` are treated as abandoned.
    """
    stale_before = to_iso(now - claim_ttl)
    cursor = conn.execute(
        "UPDATE alerts SET claimed_by = ?, claimed_at = ? "
        "WHERE id = ? AND is_enabled = 1 AND last_notified IS ? "
        "AND (claimed_by IS NULL OR claimed_at < ?)",
        (run_id, to_iso(now), alert_id, expected_last_notified, stale_before),
    )
    conn.commit()
    return cursor.rowcount == 1


def complete_claim(
    conn: sqlite3.Connection, alert_id: int, run_id: str, notified_at: datetime
) -> bool:
    """Record a delivered notification and drop the claim."""
    cursor = conn.execute(
        "UPDATE alerts SET last_notified = ?, claimed_by = NULL, claimed_at = NULL "
        "WHERE id = ? AND claimed_by = ?",
        (to_iso(notified_at), alert_id, run_id),
    )
    conn.commit()
    return cursor.rowcount == 1


def release_claim(conn: sqlite3.Connection, alert_id: int, run_id: str) -> bool:
    """Drop a claim without touching last_notified, so the next run retries."""
    cursor = conn.execute(
        "UPDATE alerts SET claimed_by = NULL, claimed_at = NULL "
        "WHERE id = ? AND claimed_by = ?",
        (alert_id, run_id),
    )
    conn.commit()
    return cursor.rowcount == 1

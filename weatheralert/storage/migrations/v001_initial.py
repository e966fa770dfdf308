"""Initial schema: users, saved locations, alerts, weather history, runs."""

import sqlite3

DDL = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # One row per (user, city); city is stored normalized
    """
    CREATE TABLE IF NOT EXISTS saved_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        label TEXT NOT NULL,
        city TEXT NOT NULL,
        latitude REAL,
        longitude REAL,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, city)
    )
    """,

    # Alert definitions plus runner-owned notification state
    """
    CREATE TABLE IF NOT EXISTS alerts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        location_id INTEGER NOT NULL REFERENCES saved_locations(id) ON DELETE CASCADE,
        condition TEXT NOT NULL,
        threshold_kind TEXT NOT NULL CHECK (threshold_kind IN ('numeric', 'text')),
        threshold_value TEXT NOT NULL,
        is_enabled INTEGER NOT NULL DEFAULT 1,
        last_notified TEXT,
        claimed_by TEXT,
        claimed_at TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_alerts_enabled ON alerts(is_enabled)",
    "CREATE INDEX IF NOT EXISTS idx_alerts_user_location ON alerts(user_id, location_id)",

    # Append-only weather snapshots
    """
    CREATE TABLE IF NOT EXISTS weather_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL,
        city TEXT NOT NULL,
        logged_at TEXT NOT NULL,
        provider_timestamp INTEGER NOT NULL,
        snapshot_json TEXT NOT NULL,
        source TEXT NOT NULL CHECK (source IN ('api', 'cache'))
    )
    """,
    (
        "CREATE INDEX IF NOT EXISTS idx_weather_history_location "
        "ON weather_history(location_id, logged_at)"
    ),
    (
        "CREATE INDEX IF NOT EXISTS idx_weather_history_city "
        "ON weather_history(city, logged_at)"
    ),

    # Alert run log
    """
    CREATE TABLE IF NOT EXISTS runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        run_id TEXT UNIQUE NOT NULL,
        config_hash TEXT,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        status TEXT NOT NULL DEFAULT 'running',
        alerts_loaded INTEGER NOT NULL DEFAULT 0,
        cities_checked INTEGER NOT NULL DEFAULT 0,
        cities_failed INTEGER NOT NULL DEFAULT 0,
        alerts_triggered INTEGER NOT NULL DEFAULT 0,
        notifications_sent INTEGER NOT NULL DEFAULT 0,
        notifications_failed INTEGER NOT NULL DEFAULT 0,
        summary_json TEXT,
        error_message TEXT
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
    conn.commit()

"""Repository for alert run tracking."""

import sqlite3


def create_run(
    conn: sqlite3.Connection, run_id: str, started_at: str, config_hash: str | None = None
) -> None:
    """Record the start of an alert run."""
    conn.execute(
        "INSERT INTO runs (run_id, started_at, config_hash) VALUES (?, ?, ?)",
        (run_id, started_at, config_hash),
    )
    conn.commit()


def complete_run(
    conn: sqlite3.Connection,
    run_id: str,
    status: str,
    completed_at: str,
    summary_json: str | None = None,
    error_message: str | None = None,
    **metrics: int | float | None,
) -> None:
    """Record run completion with metrics."""
    sets = ["completed_at = ?", "status = ?"]
    params: list = [completed_at, status]

    if summary_json is not None:
        sets.append("summary_json = ?")
        params.append(summary_json)
    if error_message is not None:
        sets.append("error_message = ?")
        params.append(error_message)
    for key, val in metrics.items():
        if val is not None:
            sets.append(f"{key} = ?")
            params.append(val)

    params.append(run_id)
    conn.execute(f"UPDATE runs SET {', '.join(sets)} WHERE run_id = ?", params)
    conn.commit()


def get_latest_run(conn: sqlite3.Connection) -> dict | None:
    row = conn.execute(
        "SELECT * FROM runs ORDER BY started_at DESC, id DESC LIMIT 1"
    ).fetchone()
    if row is None:
        return None
    return dict(row)


def list_runs(conn: sqlite3.Connection, limit: int = 20) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM runs ORDER BY started_at DESC, id DESC LIMIT ?", (limit,)
    ).fetchall()
    return [dict(r) for r in rows]

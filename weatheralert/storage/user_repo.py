"""Repository for users (notification targets)."""

import sqlite3

from weatheralert.errors import PersistenceError
from weatheralert.models.alert import User


def create_user(conn: sqlite3.Connection, email: str, name: str = "") -> User:
    """Persist a user. Emails are unique."""
    email = email.strip()
    try:
        cursor = conn.execute(
            "INSERT INTO users (email, name) VALUES (?, ?)", (email, name)
        )
    except sqlite3.IntegrityError as e:
        raise PersistenceError(f"User already exists: {email}") from e
    conn.commit()
    assert cursor.lastrowid is not None
    return User(id=cursor.lastrowid, email=email, name=name)


def get_user(conn: sqlite3.Connection, user_id: int) -> User | None:
    row = conn.execute(
        "SELECT id, email, name FROM users WHERE id = ?", (user_id,)
    ).fetchone()
    if row is None:
        return None
    return User(id=row["id"], email=row["email"], name=row["name"])


def get_user_by_email(conn: sqlite3.Connection, email: str) -> User | None:
    row = conn.execute(
        "SELECT id, email, name FROM users WHERE email = ?", (email.strip(),)
    ).fetchone()
    if row is None:
        return None
    return User(id=row["id"], email=row["email"], name=row["name"])

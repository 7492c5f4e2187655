"""Data access for users, devices and roles over a DB-API connection.

Queries use the ``?`` placeholder style. Timestamps are stored as
``YYYY-MM-DD HH:MM:SS`` text.
"""

from __future__ import annotations

import uuid
from contextlib import closing
from datetime import datetime
from typing import Any

from geosentry.models import User

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
ACTIVE_STATUS = "active"

_USER_COLUMNS = "id, username, email, password_hash, status, created_at, last_login_at"


def _rows(conn: Any, query: str, params: tuple = ()) -> list[dict[str, Any]]:
    with closing(conn.cursor()) as cursor:
        cursor.execute(query, params)
        if cursor.description is None:
            return []
        columns = [column[0] for column in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]


def _first(conn: Any, query: str, params: tuple = ()) -> dict[str, Any] | None:
    rows = _rows(conn, query, params)
    return rows[0] if rows else None


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.strptime(str(value), TIMESTAMP_FORMAT)


def _parse_optional_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return _parse_timestamp(value)
    except ValueError:
        return None


def _user_from_row(row: dict[str, Any]) -> User:
    return User(
        id=uuid.UUID(str(row["id"])),
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        status=row["status"],
        created_at=_parse_timestamp(row["created_at"]),
        last_login_at=_parse_optional_timestamp(row["last_login_at"]),
    )


def get_user_by_id(conn: Any, user_id: uuid.UUID) -> User | None:
    """Fetch a user by id, or None if there is no such user."""
    row = _first(
        conn, f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(user_id),)
    )
    return _user_from_row(row) if row is not None else None


def get_user_by_username(conn: Any, username: str) -> User | None:
    """Fetch a user by username, or None if there is no such user."""
    row = _first(
        conn, f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?", (username,)
    )
    return _user_from_row(row) if row is not None else None


def get_all_users(conn: Any) -> list[User]:
    """Fetch every user."""
    return [_user_from_row(row) for row in _rows(conn, f"SELECT {_USER_COLUMNS} FROM users")]


def create_user(conn: Any, username: str, password_hash: str) -> uuid.UUID:
    """Insert a new user with a fresh random id and return that id."""
    user_id = uuid.uuid4()
    created_at = datetime.now().strftime(TIMESTAMP_FORMAT)
    with closing(conn.cursor()) as cursor:
        cursor.execute(
            "INSERT INTO users (id, username, password_hash, created_at) "
            "VALUES (?, ?, ?, ?)",
            (str(user_id), username, password_hash, created_at),
        )
    conn.commit()
    return user_id


def _is_active_with_login(user: User | None) -> bool:
    return (
        user is not None
        and user.status == ACTIVE_STATUS
        and user.last_login_at is not None
    )


def verify_user_security(conn: Any, user_id: uuid.UUID) -> bool:
    """True if the user exists, is active and has logged in at least once."""
    return _is_active_with_login(get_user_by_id(conn, user_id))


def verify_user_device_and_role(
    conn: Any, user_id: uuid.UUID, device_id: uuid.UUID, required_role: str
) -> bool:
    """True if the user passes the security check, owns the device and holds the role."""
    if not _is_active_with_login(get_user_by_id(conn, user_id)):
        return False
    device = _first(
        conn,
        "SELECT id FROM devices WHERE id = ? AND user_id = ?",
        (str(device_id), str(user_id)),
    )
    if device is None:
        return False
    role = _first(
        conn,
        "SELECT role FROM user_roles WHERE user_id = ? AND role = ?",
        (str(user_id), required_role),
    )
    return role is not None
"""SQLite-backed persistence for users."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from .models import User
from .store import (
    SAMPLE_USERS,
    ConfigError,
    ConstraintError,
    NotFoundError,
    StoreConnectionError,
    StoreError,
    validate_user_fields,
)

logger = logging.getLogger("userapi.database")

_SQLITE_SCHEMES = {"sqlite", "sqlite3"}
_MEMORY = ":memory:"


def resolve_database_url(value: Optional[str]) -> str:
    """Translate a connection string into something :func:`sqlite3.connect` accepts.

    ``sqlite:///relative.db`` and ``sqlite:////absolute.db`` follow the usual URL
    convention; ``sqlite://``, ``sqlite://:memory:`` and ``:memory:`` select a
    private in-memory database and anything without a scheme is treated as a
    file path.
    """

    if value is None or not value.strip():
        raise ConfigError("DATABASE_URL environment variable is not set")

    raw = value.strip()
    if raw == _MEMORY:
        return raw
    if "://" not in raw:
        return str(Path(raw).expanduser())

    scheme, _, rest = raw.partition("://")
    if scheme.lower() not in _SQLITE_SCHEMES:
        raise ConfigError(f"Unsupported database scheme '{scheme}'; expected sqlite:///path")
    if rest in {"", _MEMORY, "/" + _MEMORY}:
        return _MEMORY
    if rest.startswith("/"):
        rest = rest[1:]
    return str(Path(rest).expanduser())


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    # CURRENT_TIMESTAMP defaults are naive UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Database:
    """Simple wrapper around a shared SQLite connection holding the users table."""

    def __init__(self, connection_string: Optional[str]) -> None:
        self._connection_string = connection_string
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def initialize(self) -> None:
        """Open the connection and create the users table if it does not already exist."""

        target = resolve_database_url(self._connection_string)

        with self._lock:
            if self._conn is None:
                self._conn = self._open(target)
                logger.info("Connected to SQLite database at %s", target)

            try:
                with self._conn:
                    self._conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS users (
                            id INTEGER PRIMARY KEY AUTOINCREMENT,
                            name TEXT NOT NULL,
                            email TEXT NOT NULL UNIQUE,
                            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                        """
                    )
            except sqlite3.Error as exc:
                # Leave the adapter disconnected so the next initialize retries
                self._conn.close()
                self._conn = None
                raise StoreError(f"Failed to create users table: {exc}") from exc

        logger.info("Users table ready")

    def seed_if_empty(self) -> int:
        """Insert the sample users when the table is empty and return how many were added."""

        with self._transaction() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM users").fetchone()
            if count:
                return 0
            created_at = _serialize_datetime(_current_timestamp())
            conn.executemany(
                "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
                [(name, email, created_at) for name, email in SAMPLE_USERS],
            )

        logger.info("Sample data inserted")
        return len(SAMPLE_USERS)

    def close(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
            logger.info("Database connection closed")

    def connectivity(self) -> str:
        with self._lock:
            if self._conn is None:
                return "disconnected"
            try:
                self._conn.execute("SELECT 1").fetchone()
            except sqlite3.Error:
                logger.warning("Database ping failed", exc_info=True)
                return "error"
        return "ok"

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def list_users(self) -> List[User]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT id, name, email, created_at FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def get_user(self, user_id: int) -> User:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(user_id)
        return self._row_to_user(row)

    def create_user(self, name: str, email: str) -> User:
        validate_user_fields(name, email)
        created_at = _current_timestamp()

        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
                (name, email, _serialize_datetime(created_at)),
            )
            user_id = cursor.lastrowid

        return User(id=int(user_id), name=name, email=email, created_at=created_at)

    def update_user(self, user_id: int, name: str, email: str) -> User:
        validate_user_fields(name, email)

        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET name = ?, email = ? WHERE id = ?",
                (name, email, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(user_id)
            row = conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()

        return self._row_to_user(row)

    def delete_user(self, user_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _open(target: str) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(target, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StoreConnectionError(f"Failed to connect to database: {exc}") from exc

        try:
            # Reading the schema forces SQLite to validate the file header.
            conn.execute("SELECT COUNT(*) FROM sqlite_master").fetchone()
        except sqlite3.Error as exc:
            conn.close()
            raise StoreConnectionError(f"Failed to ping database: {exc}") from exc

        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._conn
            if conn is None:
                raise StoreConnectionError("Database connection is not open")
            try:
                with conn:
                    yield conn
            except sqlite3.IntegrityError as exc:
                raise ConstraintError(f"Constraint violated: {exc}") from exc
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database", "resolve_database_url"]

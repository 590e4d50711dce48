"""SQLite-backed persistence for user records."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import DuplicateEmailError, StorageError
from .models import UserRecord

logger = logging.getLogger("usercrud.database")

DEFAULT_CONNECT_TIMEOUT = 5.0


def _ensure_directory(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(f"Unable to create database directory {path.parent}") from exc


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the user database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.sqlite3").resolve(strict=False)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


class Database:
    """Simple wrapper around SQLite for persisting user records."""

    def __init__(self, path: Path, *, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database at {self._path}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    def _execute(self, query: str, params: tuple = ()) -> Tuple[Optional[int], int]:
        """Run a write statement and return ``(lastrowid, rowcount)``."""

        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(query, params)
                return cursor.lastrowid, cursor.rowcount
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError("A user with that email already exists") from exc
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = self._connect()
        try:
            return conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        conn = self._connect()
        try:
            with conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        age INTEGER NOT NULL,
                        email TEXT NOT NULL UNIQUE,
                        registered_at TEXT NOT NULL,
                        updated_at TEXT
                    );

                    CREATE INDEX IF NOT EXISTS idx_users_name ON users(name);
                    """
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to initialise database at {self._path}") from exc
        finally:
            conn.close()
        logger.debug("Schema ready at %s", self._path)

    # ------------------------------------------------------------------
    # User records
    # ------------------------------------------------------------------
    def insert(self, name: str, age: int, email: str, registered_at: datetime) -> UserRecord:
        user_id, _ = self._execute(
            "INSERT INTO users (name, age, email, registered_at) VALUES (?, ?, ?, ?)",
            (name, age, email, _serialize_datetime(registered_at)),
        )
        if user_id is None:
            raise StorageError("Failed to load user after creation")
        return UserRecord(
            id=int(user_id),
            name=name,
            age=age,
            email=email,
            registered_at=registered_at,
        )

    def get(self, user_id: int) -> Optional[UserRecord]:
        rows = self._fetchall("SELECT * FROM users WHERE id = ?", (user_id,))
        if not rows:
            return None
        return self._row_to_user(rows[0])

    def list_all(self) -> List[UserRecord]:
        rows = self._fetchall("SELECT * FROM users ORDER BY name, id")
        return [self._row_to_user(row) for row in rows]

    def find_by_name(self, fragment: str) -> List[UserRecord]:
        # instr() is case-sensitive, unlike LIKE
        rows = self._fetchall(
            "SELECT * FROM users WHERE instr(name, ?) > 0 ORDER BY name, id",
            (fragment,),
        )
        return [self._row_to_user(row) for row in rows]

    def update(self, record: UserRecord) -> bool:
        updated_at = _serialize_datetime(record.updated_at) if record.updated_at else None
        _, rowcount = self._execute(
            "UPDATE users SET name = ?, age = ?, email = ?, updated_at = ? WHERE id = ?",
            (record.name, record.age, record.email, updated_at, record.id),
        )
        return rowcount > 0

    def delete(self, user_id: int) -> bool:
        _, rowcount = self._execute("DELETE FROM users WHERE id = ?", (user_id,))
        return rowcount > 0

    def email_exists(self, email: str) -> bool:
        rows = self._fetchall("SELECT 1 FROM users WHERE email = ? LIMIT 1", (email,))
        return bool(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> UserRecord:
        updated_at = row["updated_at"]
        return UserRecord(
            id=int(row["id"]),
            name=str(row["name"]),
            age=int(row["age"]),
            email=str(row["email"]),
            registered_at=_parse_datetime(str(row["registered_at"])),
            updated_at=_parse_datetime(str(updated_at)) if updated_at else None,
        )


__all__ = ["Database", "DEFAULT_CONNECT_TIMEOUT", "resolve_database_path"]

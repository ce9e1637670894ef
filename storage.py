# storage.py
from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Dict, Optional, Protocol

from loguru import logger

from errors import StorageError, StorageQuotaExceeded


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


def _check_quota(key: str, value: str, quota: int) -> None:
    if quota and len(value.encode("utf-8")) > quota:
        raise StorageQuotaExceeded(key, len(value.encode("utf-8")), quota)


class MemoryStorage:
    """In-process storage; contents are lost with the process. Used by tests and headless runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, *, quota_bytes: int = 0):
        self.data: Dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SQLiteStorage:
    """
    One row per key in a small SQLite file under the Chatpane home.
    Every call opens its own connection, so a write is committed before set() returns.
    """

    def __init__(self, db_path: Path, *, quota_bytes: int = 0):
        self.db_path = Path(db_path)
        self.quota_bytes = quota_bytes
        self._init_db()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated REAL NOT NULL       -- unix epoch
                )
                """
            )
            con.commit()
        logger.debug("SQLiteStorage ready at {}", str(self.db_path))

    def get(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as con:
                row = con.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"read '{key}' failed: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        try:
            with sqlite3.connect(self.db_path) as con:
                con.execute(
                    "INSERT INTO kv(key, value, updated) VALUES (?,?,?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated=excluded.updated",
                    (key, value, time.time()),
                )
                con.commit()
        except sqlite3.Error as e:
            raise StorageError(f"write '{key}' failed: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as con:
                con.execute("DELETE FROM kv WHERE key=?", (key,))
                con.commit()
        except sqlite3.Error as e:
            raise StorageError(f"delete '{key}' failed: {e}") from e

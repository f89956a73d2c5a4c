from __future__ import annotations

import sqlite3
from pathlib import Path

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class QuotaExceededError(Exception):
    """Raised when a write would push the store past its byte quota."""


class LocalStorage:
    """String key/value store with a fixed capacity, kept in a SQLite file.

    Sizes are counted as the UTF-8 byte length of every key plus its value.
    """

    def __init__(self, db_path: str, *, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = quota_bytes
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def close(self) -> None:
        self._conn.close()

    def get_item(self, key: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM items WHERE key = ? LIMIT 1",
            (key,),
        ).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        needed = _byte_len(key) + _byte_len(value)
        if self.used_bytes(excluding=key) + needed > self._quota_bytes:
            raise QuotaExceededError(
                f"Writing {needed} bytes under {key!r} exceeds the {self._quota_bytes} byte quota"
            )
        self._conn.execute(
            "INSERT INTO items (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        self._conn.commit()

    def remove_item(self, key: str) -> None:
        self._conn.execute("DELETE FROM items WHERE key = ?", (key,))
        self._conn.commit()

    def clear(self) -> None:
        self._conn.execute("DELETE FROM items")
        self._conn.commit()

    def used_bytes(self, *, excluding: str | None = None) -> int:
        row = self._conn.execute(
            """
            SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) AS used
            FROM items
            WHERE key IS NOT ?
            """,
            (excluding,),
        ).fetchone()
        return int(row["used"])

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS items (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        self._conn.commit()


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))

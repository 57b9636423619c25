"""
SQLite-based Key-Value Store.

Persistent storage for extracted chunk sets, shared by all pipeline workers
of one process.

Example:
    >>> with SQLiteKV(db_path="./content.db") as kv:
    ...     kv.set("chunks/document/doc-1", payload)
    ...     kv.get("chunks/document/doc-1")
"""

import contextlib
import logging
import sqlite3
import threading
from pathlib import Path

from kbforge.storage.kv.base import BaseKVStore

logger = logging.getLogger(__name__)


class SQLiteKV(BaseKVStore):
    """
    Persistent Key-Value Store using SQLite.

    A single connection is shared between worker threads and guarded by a
    reentrant lock; WAL mode keeps readers from blocking the writer.

    Attributes:
        db_path: Path to the SQLite database file (":memory:" for tests)
        table_name: Name of the table storing key-value pairs
        timeout: Connection timeout in seconds
    """

    def __init__(
        self,
        db_path: str = "content.db",
        table_name: str = "kv_store",
        timeout: float = 30.0
    ):
        self.db_path = db_path
        self.table_name = table_name
        self.timeout = timeout
        self._lock = threading.RLock()
        self._closed = False

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            check_same_thread=False  # Access is serialized by self._lock
        )
        self._connection.execute("PRAGMA journal_mode=WAL")

        self._init_db()
        logger.debug(f"SQLiteKV initialized: {db_path}, table={table_name}")

    def _init_db(self) -> None:
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self._connection.commit()

    def _check_closed(self) -> None:
        if self._closed:
            raise RuntimeError(
                "Cannot perform operation: SQLiteKV connection has been closed. "
                "Create a new SQLiteKV instance to continue."
            )

    def mget(self, keys: list[str]) -> list[str | None]:
        self._check_closed()
        if not keys:
            return []

        placeholders = ",".join("?" * len(keys))
        query = f"SELECT key, value FROM {self.table_name} WHERE key IN ({placeholders})"

        with self._lock:
            results_map = dict(self._connection.execute(query, keys).fetchall())

        return [results_map.get(k) for k in keys]

    def mset(self, data: dict[str, str]) -> None:
        self._check_closed()
        if not data:
            return

        query = f"INSERT OR REPLACE INTO {self.table_name} (key, value) VALUES (?, ?)"
        with self._lock:
            self._connection.executemany(query, list(data.items()))
            self._connection.commit()

    def delete(self, keys: list[str]) -> None:
        self._check_closed()
        if not keys:
            return

        placeholders = ",".join("?" * len(keys))
        with self._lock:
            self._connection.execute(
                f"DELETE FROM {self.table_name} WHERE key IN ({placeholders})", keys
            )
            self._connection.commit()

    def close(self) -> None:
        """Close the connection. Further operations raise RuntimeError."""
        if self._closed:
            return

        with self._lock:
            try:
                self._connection.close()
                logger.debug(f"SQLiteKV connection closed: {self.db_path}")
            finally:
                self._closed = True

    def __enter__(self) -> "SQLiteKV":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self):
        if not getattr(self, "_closed", True):
            with contextlib.suppress(Exception):
                self.close()

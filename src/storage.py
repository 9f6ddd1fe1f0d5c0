"""
Key-value storage tiers for session persistence.

Two tiers back the session:
- ephemeral: lives as long as the browser session (in-memory here, or
  Streamlit session state via src.ui.session)
- durable: survives restarts (SQLite file, thread-local connections, WAL)

Any tier can be wrapped in FailSafeStorage so that a broken backend
degrades to in-memory behaviour instead of raising.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from src.exceptions import StorageError

logger = logging.getLogger(__name__)


@runtime_checkable
class StorageTier(Protocol):
    """String key-value store with get/set/remove."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed tier. Used as the ephemeral tier outside Streamlit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data


class SQLiteStorage:
    """
    Durable tier stored in a SQLite file.

    Uses thread-local connections with WAL mode for concurrency.

    Example:
        store = SQLiteStorage(Path("data/session.db"))
        store.set("auth_token", "abc")
        store.get("auth_token")  # "abc"
    """

    def __init__(self, path: Path):
        """
        Initialize the SQLite store.

        Args:
            path: Path to SQLite database file (will be created if needed)

        Raises:
            StorageError: If the database cannot be created.
        """
        self.path = Path(path)
        self._local = threading.local()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(
                "Failed to open durable session storage",
                operation="init",
                tier=str(self.path),
            ) from e

    def _get_conn(self) -> sqlite3.Connection:
        """
        Get thread-local SQLite connection.

        Each thread gets its own connection to avoid locking issues.
        """
        if not hasattr(self._local, "conn"):
            self._local.conn = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                timeout=10.0,
            )
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA busy_timeout=10000")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
        return self._local.conn

    def _init_db(self) -> None:
        """Initialize the key-value table."""
        conn = self._get_conn()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)
        conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            row = self._get_conn().execute(
                "SELECT value FROM kv_entries WHERE key = ?",
                (key,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(operation="get", key=key, tier=str(self.path)) from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, time.time()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(operation="set", key=key, tier=str(self.path)) from e

    def remove(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(operation="remove", key=key, tier=str(self.path)) from e

    def clear(self) -> None:
        """Remove every entry."""
        conn = self._get_conn()
        conn.execute("DELETE FROM kv_entries")
        conn.commit()

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            del self._local.conn


class FailSafeStorage:
    """
    Wrap a tier so read/write failures fall back to an in-memory shadow.

    Writes always land in the shadow; reads prefer the backend and use the
    shadow once the backend has failed. A failed backend is not retried.
    """

    def __init__(self, backend: StorageTier, *, name: str = "storage") -> None:
        self._backend = backend
        self._shadow = MemoryStorage()
        self._name = name
        self._degraded = False

    @property
    def degraded(self) -> bool:
        return self._degraded

    def _degrade(self, operation: str, key: str, exc: Exception) -> None:
        if not self._degraded:
            logger.warning(
                "Storage tier %s failed on %s(%s); continuing in memory: %s",
                self._name,
                operation,
                key,
                exc,
            )
        self._degraded = True

    def get(self, key: str) -> Optional[str]:
        if not self._degraded:
            try:
                return self._backend.get(key)
            except Exception as e:  # any backend failure degrades the tier
                self._degrade("get", key, e)
        return self._shadow.get(key)

    def set(self, key: str, value: str) -> None:
        self._shadow.set(key, value)
        if not self._degraded:
            try:
                self._backend.set(key, value)
            except Exception as e:
                self._degrade("set", key, e)

    def remove(self, key: str) -> None:
        self._shadow.remove(key)
        if not self._degraded:
            try:
                self._backend.remove(key)
            except Exception as e:
                self._degrade("remove", key, e)

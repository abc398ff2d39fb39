"""SQLite helpers and the SQLite-backed session cache."""
from __future__ import annotations

import datetime as dt
import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from config.settings import settings
from interview.models import SessionSnapshot

from .migrate import migrate
from .snapshot_codec import decode_snapshot, encode_snapshot


@contextmanager
def get_conn(db_path: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection, ensuring the data directory exists."""

    path = db_path or settings.SESSION_CACHE_PATH
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


class SqliteSessionCache:
    """Key-value snapshot store; one row per cache key."""

    def __init__(self, db_path: Optional[str] = None, *, key: Optional[str] = None) -> None:
        self._db_path = db_path or settings.SESSION_CACHE_PATH
        self._key = key or settings.SESSION_CACHE_KEY
        self._lock = threading.Lock()
        migrate(self._db_path)

    def save(self, snapshot: SessionSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
        with self._lock, get_conn(self._db_path) as conn:
            conn.execute(
                """INSERT INTO session_cache (cache_key, saved_at, payload)
                   VALUES (?, ?, ?)
                   ON CONFLICT(cache_key) DO UPDATE SET saved_at = excluded.saved_at, payload = excluded.payload""",
                (self._key, timestamp, payload),
            )

    def load(self) -> Optional[SessionSnapshot]:
        with self._lock, get_conn(self._db_path) as conn:
            row = conn.execute("SELECT payload FROM session_cache WHERE cache_key = ?", (self._key,)).fetchone()
        if row is None:
            return None
        snapshot = decode_snapshot(row[0])
        if snapshot is None:
            self.clear()
        return snapshot

    def clear(self) -> None:
        with self._lock, get_conn(self._db_path) as conn:
            conn.execute("DELETE FROM session_cache WHERE cache_key = ?", (self._key,))

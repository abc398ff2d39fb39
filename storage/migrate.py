"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS session_cache (
  cache_key TEXT PRIMARY KEY,
  saved_at TEXT NOT NULL,
  payload TEXT NOT NULL
);
""",
]


def migrate(db_path: str = settings.SESSION_CACHE_PATH) -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()

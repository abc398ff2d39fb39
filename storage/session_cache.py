"""Session cache backends used to persist interview snapshots."""
from __future__ import annotations

import logging
import os
import threading
from typing import Optional, Protocol

from config.settings import Settings, settings as default_settings
from interview.models import SessionSnapshot

from .snapshot_codec import decode_snapshot, encode_snapshot
from .sqlite import SqliteSessionCache

logger = logging.getLogger(__name__)


class SessionCache(Protocol):  # Persistence collaborator for the orchestrator
    def save(self, snapshot: SessionSnapshot) -> None: ...

    def load(self) -> Optional[SessionSnapshot]: ...

    def clear(self) -> None: ...


class InMemorySessionCache:
    """Keeps the encoded snapshot in memory; used by tests and the ``memory`` backend."""

    def __init__(self) -> None:
        self._payload: Optional[str] = None
        self._lock = threading.Lock()

    def save(self, snapshot: SessionSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        with self._lock:
            self._payload = payload

    def load(self) -> Optional[SessionSnapshot]:
        with self._lock:
            payload = self._payload
        if payload is None:
            return None
        snapshot = decode_snapshot(payload)
        if snapshot is None:
            self.clear()
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._payload = None


class JsonFileSessionCache:
    """One JSON file per cache, replaced atomically on every save."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    def save(self, snapshot: SessionSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        directory = os.path.dirname(self._path)
        with self._lock:
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = self._path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)

    def load(self) -> Optional[SessionSnapshot]:
        with self._lock:
            if not os.path.exists(self._path):
                return None
            with open(self._path, "r", encoding="utf-8") as handle:
                payload = handle.read()
        snapshot = decode_snapshot(payload)
        if snapshot is None:
            self.clear()
        return snapshot

    def clear(self) -> None:
        with self._lock:
            if os.path.exists(self._path):
                os.remove(self._path)


def build_session_cache(cfg: Settings = default_settings) -> SessionCache:
    backend = cfg.SESSION_CACHE_BACKEND.lower()
    if backend == "memory":
        return InMemorySessionCache()
    if backend == "file":
        path = cfg.SESSION_CACHE_PATH
        if not path.endswith(".json"):
            path = os.path.splitext(path)[0] + ".json"
        return JsonFileSessionCache(path)
    if backend == "sqlite":
        return SqliteSessionCache(cfg.SESSION_CACHE_PATH, key=cfg.SESSION_CACHE_KEY)
    raise ValueError(f"Unknown session cache backend: {cfg.SESSION_CACHE_BACKEND}")


__all__ = [
    "InMemorySessionCache",
    "JsonFileSessionCache",
    "SessionCache",
    "SqliteSessionCache",
    "build_session_cache",
]

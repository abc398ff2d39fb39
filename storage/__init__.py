"""Persistence backends for interview session snapshots."""

from .migrate import migrate
from .session_cache import (
    InMemorySessionCache,
    JsonFileSessionCache,
    SessionCache,
    SqliteSessionCache,
    build_session_cache,
)

__all__ = [
    "InMemorySessionCache",
    "JsonFileSessionCache",
    "SessionCache",
    "SqliteSessionCache",
    "build_session_cache",
    "migrate",
]

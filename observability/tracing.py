"""Simple span helper for timing agent calls."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@contextmanager
def span(name: str, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        extras = " ".join(f"{key}={value}" for key, value in fields.items())
        logger.info("span name=%s outcome=%s ms=%d %s", name, outcome, elapsed_ms, extras)


__all__ = ["span"]

from __future__ import annotations  # JSON encoding of persisted session snapshots

import logging
from typing import Optional, Union

from pydantic import ValidationError

from interview.models import SNAPSHOT_VERSION, SessionSnapshot

logger = logging.getLogger(__name__)


def encode_snapshot(snapshot: SessionSnapshot) -> str:
    return snapshot.model_dump_json()


def decode_snapshot(raw: Union[str, bytes]) -> Optional[SessionSnapshot]:
    """Parse a stored snapshot; corrupt or incompatible payloads yield None."""

    try:
        snapshot = SessionSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Discarding corrupt session snapshot: %s", exc)
        return None
    if snapshot.version != SNAPSHOT_VERSION:
        logger.warning("Discarding session snapshot with version %s (expected %s)", snapshot.version, SNAPSHOT_VERSION)
        return None
    return snapshot


__all__ = ["decode_snapshot", "encode_snapshot"]

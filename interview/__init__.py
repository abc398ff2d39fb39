"""Interview core: session state, prefetching and result reporting.

The orchestrator lives in :mod:`interview.orchestrator` and is imported from
there directly since it pulls in the storage backends.
"""

from .errors import ConcurrencyError, InterviewError, SessionStateError, ValidationError
from .models import (
    CurrentQuestion,
    InterviewRequest,
    InterviewStatus,
    InterviewTurn,
    PrefetchEntry,
    Session,
    SessionSnapshot,
    TopicOverview,
    TopicState,
)
from .prefetch import DrainResult, PrefetchManager
from .report import InterviewReport, TopicResult
from .session import TopicSessionState

__all__ = [
    "ConcurrencyError",
    "CurrentQuestion",
    "DrainResult",
    "InterviewError",
    "InterviewReport",
    "InterviewRequest",
    "InterviewStatus",
    "InterviewTurn",
    "PrefetchEntry",
    "PrefetchManager",
    "Session",
    "SessionSnapshot",
    "SessionStateError",
    "TopicOverview",
    "TopicResult",
    "TopicSessionState",
    "TopicState",
    "ValidationError",
]

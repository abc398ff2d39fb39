from __future__ import annotations  # Interview core error taxonomy


class InterviewError(RuntimeError):  # Base interview core error
    pass


class ValidationError(InterviewError, ValueError):  # Bad local input or topic plan
    pass


class ConcurrencyError(InterviewError):  # Another user-facing operation is in flight
    pass


class SessionStateError(InterviewError):  # Operation not allowed in the current phase
    pass


__all__ = ["ConcurrencyError", "InterviewError", "SessionStateError", "ValidationError"]

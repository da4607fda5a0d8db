"""Error taxonomy surfaced by the session engine."""
from __future__ import annotations

from typing import Literal, Optional

ErrorKind = Literal["fatal", "rate_limit", "general"]


class SessionError(Exception):
    """Base error; ``kind`` tells the caller whether to retry."""

    kind: ErrorKind = "general"

    def __init__(self, message: str, *, retry_after: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after


class SessionNotFound(SessionError):
    kind = "fatal"

    def __init__(self, message: str = "Session not found"):
        super().__init__(message)


class SessionAbandoned(SessionError):
    kind = "fatal"

    def __init__(self, message: str = "Session was abandoned"):
        super().__init__(message)


class RateLimited(SessionError):
    kind = "rate_limit"


class SessionBusy(SessionError):
    def __init__(self, message: str = "An answer is already being evaluated"):
        super().__init__(message)


class InvalidTransition(SessionError):
    pass


class InvalidAnswer(SessionError):
    pass


class EvaluationFailed(SessionError):
    pass


__all__ = [
    "ErrorKind",
    "EvaluationFailed",
    "InvalidAnswer",
    "InvalidTransition",
    "RateLimited",
    "SessionAbandoned",
    "SessionBusy",
    "SessionError",
    "SessionNotFound",
]

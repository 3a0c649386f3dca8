"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations

SUGGESTED_ACTION_CREATE_SESSION = "create_new_session"
SUGGESTED_ACTION_RETRY_TURN = "retry_turn"


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code``, ``status_code`` and optionally
    ``suggested_action`` at the class level; callers provide ``message`` and
    an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500
    suggested_action: str | None = None

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidReferenceException(AppException):
    """Session reference is empty or a placeholder such as ``"undefined"``."""

    code = "INVALID_REFERENCE"
    status_code = 400
    suggested_action = SUGGESTED_ACTION_CREATE_SESSION

    def __init__(self, ref: str | None) -> None:
        super().__init__(
            "Invalid session reference; create a new session first",
            details=[{"field": "sessionId", "message": f"unusable reference: {ref!r}"}],
        )
        self.ref = ref


class SessionNotFoundException(NotFoundException):
    code = "SESSION_NOT_FOUND"
    suggested_action = SUGGESTED_ACTION_CREATE_SESSION

    def __init__(self, ref: str) -> None:
        super().__init__(
            f"Session {ref} not found",
            details=[{"field": "sessionId", "message": ref}],
        )
        self.ref = ref


class TurnConflictException(ConflictException):
    code = "TURN_CONFLICT"
    suggested_action = SUGGESTED_ACTION_RETRY_TURN


class UpstreamReplyFailureException(AppException):
    code = "UPSTREAM_REPLY_FAILURE"
    status_code = 502


class PersistenceFailureException(AppException):
    code = "PERSISTENCE_FAILURE"
    status_code = 500

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a domain failure, used by interfaces to pick a reply."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    INACTIVE_ACCOUNT = "inactive_account"


class GamingError(Exception):
    """Base class for every business-rule violation raised by the domain."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GamingError):
    """Malformed input: name, email, identifier or game data."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(GamingError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(GamingError):
    """Duplicate email, a second active session, or ending an ended session."""

    kind = ErrorKind.CONFLICT


class InvalidStateError(GamingError):
    """An operation was attempted against a session that is not active."""

    kind = ErrorKind.INVALID_STATE


class InactiveAccountError(GamingError):
    kind = ErrorKind.INACTIVE_ACCOUNT

"""
App-level exceptions raised by the CRUD layer.

Every failure that leaves a repository is one of these, and every one of them
belongs to exactly one `ErrorKind`. The kind decides the HTTP status and the
`error` string written to the response envelope.
"""

from enum import Enum
from typing import Iterable


class ErrorKind(str, Enum):
    """Uniform error taxonomy. The value is the wire name used in envelopes."""

    NOT_FOUND = "NotFound"
    DUPLICATE_ENTITY = "DuplicateEntity"
    VALIDATION_FAILURE = "ValidationFailure"
    UNKNOWN = "Unknown"


# canonical error_code -> kind
ERROR_CODE_TO_KIND = {
    "not_found": ErrorKind.NOT_FOUND,
    "duplicate": ErrorKind.DUPLICATE_ENTITY,
    "invalid_field": ErrorKind.VALIDATION_FAILURE,
    "validation_failed": ErrorKind.VALIDATION_FAILURE,
    "unknown": ErrorKind.UNKNOWN,
}

KIND_TO_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_ENTITY: 409,
    ErrorKind.VALIDATION_FAILURE: 400,
    ErrorKind.UNKNOWN: 500,
}


class RepositoryError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['email'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'invalid_field') used by clients

    A RepositoryError without an error_code is unclassified and maps to
    ErrorKind.UNKNOWN.
    """

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    @property
    def kind(self) -> ErrorKind:
        return ERROR_CODE_TO_KIND.get(self.error_code or "unknown", ErrorKind.UNKNOWN)

    def http_status(self) -> int:
        """HTTP status that should accompany this error, derived from its kind."""
        return KIND_TO_STATUS[self.kind]


class NotFoundError(RepositoryError):
    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class DuplicateError(RepositoryError):
    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="duplicate")


class ValidationFailureError(RepositoryError):
    """Store-level field validation or cast rejection."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="validation_failed")


class InvalidFieldError(RepositoryError):
    """Raised when the caller passes unexpected/unknown fields to repository methods."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="invalid_field")


class UnknownError(RepositoryError):
    """Unclassified underlying failure. The original exception is kept as __cause__."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, error_code="unknown")


__all__ = [
    "ErrorKind",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "ValidationFailureError",
    "InvalidFieldError",
    "UnknownError",
]

"""
Logging filters.

- RequestIdFilter: guarantees every LogRecord has `request_id`, read from a
  ContextVar that RequestIDMiddleware sets per request. The ContextVar follows
  the request across awaits, which threading.local() would not.
- RedactFilter: masks sensitive `extra` attributes before any handler formats them.

Both always return True; they annotate records, never drop them.
"""

import contextvars
import logging
from logging import LogRecord

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)

REDACTED = "***REDACTED***"


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Set the request id for the current context; returns the token for reset_request_id()."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Sets `record.request_id` to, in order: an explicit `extra={"request_id": ...}`,
    the context value, or the sentinel "-".
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = getattr(record, "request_id", None) or get_request_id() or "-"
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = frozenset({
        "password", "password_hash", "secret", "token", "access_token",
        "refresh_token", "authorization", "ssn",
    })

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = REDACTED
        return True

"""
Error classifier: map heterogeneous store-layer failures onto `ErrorKind`.

Classification looks at failure metadata only (SQLSTATE codes, exception
types, message keywords). It never raises, and every exception maps to exactly
one kind, with `ErrorKind.UNKNOWN` as the fallback.

Signals, in order of precedence:
    1. App-level exceptions (`RepositoryError`) already carry their kind.
    2. Integrity errors: Postgres SQLSTATE first, then message keywords
       (SQLite / MySQL) -> duplicate-key or validation signal.
    3. Cast / type-mismatch signals: `DataError`, `StatementError` wrapping a
       ValueError/TypeError, plain ValueError/TypeError raised while binding.
    4. Query-construction signals: `InvalidRequestError`, `ArgumentError`
       (unknown relationship, bad loader option).
"""
import logging
from enum import Enum

from sqlalchemy.exc import (
    ArgumentError,
    DataError,
    IntegrityError,
    InvalidRequestError,
    StatementError,
)

from .base import ErrorKind, RepositoryError

logger = logging.getLogger(__name__)


class ConstraintSignal(str, Enum):
    """What an integrity error says about the violated constraint."""

    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"
    INVALID_TEXT_REPRESENTATION = "22P02"
    NUMERIC_VALUE_OUT_OF_RANGE = "22003"
    STRING_DATA_RIGHT_TRUNCATION = "22001"
    INVALID_DATETIME_FORMAT = "22007"


PGCODE_SIGNAL_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION: ConstraintSignal.UNIQUE,
    PostgresErrorCodes.NOT_NULL_VIOLATION: ConstraintSignal.NOT_NULL,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION: ConstraintSignal.FOREIGN_KEY,
    PostgresErrorCodes.CHECK_VIOLATION: ConstraintSignal.CHECK,
}

# data exceptions (class 22) are cast / range rejections
PGCODE_CAST_CLASS = "22"

SIGNAL_TO_KIND = {
    ConstraintSignal.UNIQUE: ErrorKind.DUPLICATE_ENTITY,
    ConstraintSignal.NOT_NULL: ErrorKind.VALIDATION_FAILURE,
    ConstraintSignal.FOREIGN_KEY: ErrorKind.VALIDATION_FAILURE,
    ConstraintSignal.CHECK: ErrorKind.VALIDATION_FAILURE,
    ConstraintSignal.UNKNOWN: ErrorKind.UNKNOWN,
}


def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _pgcode(orig) -> str | None:
    # psycopg exposes `pgcode`, asyncpg exposes `sqlstate`
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _constraint_name(orig) -> str | None:
    diag = getattr(orig, "diag", None)
    if diag is not None:
        return getattr(diag, "constraint_name", None)
    return getattr(orig, "constraint_name", None)


def _signal_from_postgres(orig) -> tuple[ConstraintSignal | None, str | None]:
    pgcode = _pgcode(orig)
    if not pgcode:
        return None, None

    constraint_name = _constraint_name(orig)
    signal = PGCODE_SIGNAL_MAP.get(pgcode)
    if signal is not None:
        logger.debug("classifier.postgres_diagnostic",
                     extra={"pgcode": pgcode, "constraint_name": constraint_name})
        return signal, constraint_name

    logger.warning("classifier.unknown_pgcode",
                   extra={"pgcode": pgcode, "constraint_name": constraint_name})
    return ConstraintSignal.UNKNOWN, constraint_name


def _signal_from_message(msg: str) -> ConstraintSignal:
    normalized = (msg or "").lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return ConstraintSignal.UNIQUE

    if _match_any(normalized, ["not null constraint", "not null", "null value in column"]):
        return ConstraintSignal.NOT_NULL

    if _match_any(normalized, ["foreign key constraint", "foreign key", "is not present in table"]):
        return ConstraintSignal.FOREIGN_KEY

    if _match_any(normalized, ["check constraint", "check failed"]):
        return ConstraintSignal.CHECK

    logger.warning("classifier.unknown_integrity_message", extra={"message_snippet": normalized[:200]})
    return ConstraintSignal.UNKNOWN


def classify_integrity_error(exc: IntegrityError) -> tuple[ConstraintSignal, str | None]:
    """
    Classify an IntegrityError into a ConstraintSignal plus the constraint name when the
    driver reports one. Postgres diagnostics are preferred over message parsing.
    """
    orig = exc.orig
    signal, constraint_name = _signal_from_postgres(orig)
    if signal is not None:
        return signal, constraint_name
    return _signal_from_message(str(orig) if orig is not None else str(exc)), None


def _is_cast_failure(exc: BaseException) -> bool:
    if isinstance(exc, DataError):
        return True

    pgcode = _pgcode(getattr(exc, "orig", None))
    if pgcode and pgcode.startswith(PGCODE_CAST_CLASS):
        return True

    if isinstance(exc, StatementError):
        # bind-time conversion failures surface as StatementError wrapping the cause
        return isinstance(exc.orig, (ValueError, TypeError))

    return isinstance(exc, (ValueError, TypeError))


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map any exception to exactly one ErrorKind. Total: never raises.
    """
    if isinstance(exc, RepositoryError):
        return exc.kind

    if isinstance(exc, IntegrityError):
        signal, _ = classify_integrity_error(exc)
        return SIGNAL_TO_KIND[signal]

    if _is_cast_failure(exc):
        return ErrorKind.VALIDATION_FAILURE

    if isinstance(exc, (InvalidRequestError, ArgumentError)):
        return ErrorKind.VALIDATION_FAILURE

    return ErrorKind.UNKNOWN


__all__ = [
    "ConstraintSignal",
    "PostgresErrorCodes",
    "classify_integrity_error",
    "classify_error",
]

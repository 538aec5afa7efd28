import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .classifier import ConstraintSignal, classify_error, classify_integrity_error
from .base import (
    DuplicateError,
    ErrorKind,
    RepositoryError,
    UnknownError,
    ValidationFailureError,
)

logger = logging.getLogger(__name__)

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Extract column names from Postgres messages:
      - 'null value in column "username" violates not-null constraint'
      - 'DETAIL:  Key (email, username)=(a@b.com, u) already exists.'
    """
    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # 'UNIQUE constraint failed: users.email' / 'NOT NULL constraint failed: users.email'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', msg, flags=re.IGNORECASE | re.MULTILINE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]
    return None


def _extract_columns_mysql(msg: str) -> list[str] | None:
    # "Duplicate entry 'foo' for key 'idx_users_email'"
    m = re.search(r"Duplicate entry .* for key '?([^']+)'?", msg, flags=re.IGNORECASE)
    if m:
        return [m.group(1)]
    return None


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from the DB message (Postgres, SQLite, MySQL).
    """
    msg = str(exc.orig) if exc.orig is not None else str(exc)
    if not msg:
        return None

    for extractor in (_extract_columns_postgres, _extract_columns_sqlite, _extract_columns_mysql):
        cols = extractor(msg)
        if cols:
            return cols
    return None


# -----------------------
# Mapper
# -----------------------

def _map_integrity_error(exc: IntegrityError, model_part: str) -> RepositoryError:
    signal, constraint_name = classify_integrity_error(exc)
    columns = extract_columns_from_integrity(exc)
    log_extra = {"model": model_part, "fields": columns, "constraint": constraint_name}

    if signal is ConstraintSignal.UNIQUE:
        # expected client-level scenario (409), no stack trace
        logger.info("mapper.duplicate_detected", extra=log_extra)
        if columns:
            return DuplicateError(f"{model_part} already exists for field(s): {', '.join(columns)}",
                                  fields=columns, constraint=constraint_name)
        return DuplicateError(f"{model_part} already exists", constraint=constraint_name)

    if signal is ConstraintSignal.NOT_NULL:
        logger.info("mapper.not_null_violation", extra=log_extra)
        if columns:
            return ValidationFailureError(f"Missing required field(s): {', '.join(columns)} for {model_part}",
                                          fields=columns, constraint=constraint_name)
        return ValidationFailureError(f"Missing required field for {model_part}", constraint=constraint_name)

    if signal is ConstraintSignal.FOREIGN_KEY:
        logger.info("mapper.foreign_key_violation", extra=log_extra)
        return ValidationFailureError(f"{model_part} references an entity that does not exist",
                                      fields=columns, constraint=constraint_name)

    if signal is ConstraintSignal.CHECK:
        # raw DB text stays at DEBUG
        logger.debug("mapper.check_constraint_failure", extra={**log_extra, "raw": str(exc.orig)})
        return ValidationFailureError(f"{model_part} business rule violated (check constraint)",
                                      constraint=constraint_name)

    logger.warning("mapper.unknown_integrity_error", extra={"model": model_part, "constraint": constraint_name})
    logger.debug("mapper.unknown_integrity_raw", extra={"model": model_part, "raw": str(exc.orig)})
    return UnknownError(f"{model_part} database integrity error")


def to_app_error(exc: BaseException, model_name: str | None = None) -> RepositoryError:
    """
    Convert any exception into the app-level RepositoryError for its ErrorKind.

    App-level errors are returned unchanged. Messages never contain raw DB text.
    """
    if isinstance(exc, RepositoryError):
        return exc

    model_part = model_name or "Record"

    if isinstance(exc, IntegrityError):
        return _map_integrity_error(exc, model_part)

    kind = classify_error(exc)
    if kind is ErrorKind.VALIDATION_FAILURE:
        logger.info("mapper.validation_failure",
                    extra={"model": model_part, "exc_type": type(exc).__name__})
        return ValidationFailureError(f"Invalid value or query for {model_part}")

    # Unexpected: keep the stack trace in the logs
    logger.error("mapper.unknown_error", exc_info=exc, extra={"model": model_part})
    return UnknownError(f"Failed to operate on {model_part}")


def raise_mapped_error(exc: BaseException, model_name: str | None = None) -> None:
    """Raise the app-level error for `exc`, chained to the original."""
    mapped = to_app_error(exc, model_name)
    if mapped is exc:
        raise exc
    raise mapped from exc


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Usage:
        async with db_error_handler(self.db, self.model.__name__):
            ... store operations ...

    App-level errors pass through untouched. Any other failure rolls the session back
    and is re-raised as the mapped app-level exception.
    """
    try:
        yield
    except RepositoryError:
        raise
    except Exception as exc:
        try:
            await db.rollback()
        except Exception:
            logger.exception("Failed to rollback session after store error", extra={"model": model_name})
        raise_mapped_error(exc, model_name)

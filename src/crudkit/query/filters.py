"""
Store-side translation of equality filters into SQLAlchemy conditions.

Two flavours of filter reach the store:
    - caller-fixed filters, written by application code: strict. An unknown key is
      a programming error and raises InvalidFieldError.
    - residual request filters, written by clients: lenient. Unknown keys are
      dropped with a warning.

In both cases string values are coerced to the column's Python type, and a value
that cannot be coerced raises ValidationFailureError.
"""

import enum
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.sql.elements import ColumnElement

from crudkit.exceptions.base import InvalidFieldError, ValidationFailureError

logger = logging.getLogger(__name__)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def column_attrs(model) -> dict[str, Any]:
    """Mapped column attributes by key (relationships excluded)."""
    return {attr.key: attr for attr in sa_inspect(model).column_attrs}


def _python_type(column) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_value(column, raw: Any, *, null_literal: bool = True) -> Any:
    """
    Coerce a raw query-string value to the Python type of `column`.

    Non-string values are returned unchanged; so are values for types without a
    known python_type. With `null_literal` the string 'null' maps to None.
    """
    if not isinstance(raw, str):
        return raw
    if null_literal and raw.lower() == "null":
        return None

    py_type = _python_type(column)
    if py_type is None or py_type is str:
        return raw

    value = raw.strip()
    try:
        if py_type is bool:
            lowered = value.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if py_type is int:
            return int(value)
        if py_type is float:
            return float(value)
        if py_type is Decimal:
            return Decimal(value)
        if py_type is uuid.UUID:
            return uuid.UUID(value)
        if py_type is datetime:
            return datetime.fromisoformat(value)
        if py_type is date:
            return date.fromisoformat(value)
        if issubclass(py_type, enum.Enum):
            return py_type(value)
    except (ValueError, TypeError, InvalidOperation) as exc:
        raise ValidationFailureError(
            f"Cannot cast value {raw!r} for field '{column.key}'", fields=[column.key]
        ) from exc

    return raw


def build_conditions(model, filters: Mapping[str, Any] | None, *, strict: bool = True) -> list[ColumnElement]:
    """
    Build equality conditions for `filters` against `model`.

    Args:
        model: mapped class.
        filters: field -> value mapping.
        strict: raise InvalidFieldError on unknown keys (True) or drop them (False).
    """
    if not filters:
        return []

    columns = column_attrs(model)

    unknown = sorted(k for k in filters if k not in columns)
    if unknown:
        if strict:
            raise InvalidFieldError(
                f"Unknown filter field(s) for {model.__name__}: {', '.join(unknown)}", fields=unknown
            )
        logger.warning("filters.ignored_unknown_fields",
                       extra={"model": model.__name__, "ignored_fields": unknown})

    conditions = []
    for key, raw in filters.items():
        if key not in columns:
            continue
        attr = getattr(model, key)
        value = coerce_value(columns[key].columns[0], raw)
        conditions.append(attr.is_(None) if value is None else attr == value)
    return conditions


def merge_filters(caller: Mapping[str, Any] | None, residual: Mapping[str, Any] | None) -> tuple[dict, dict]:
    """
    Split the merged filter into (caller, residual) with caller keys winning on collision.
    """
    caller = dict(caller or {})
    residual = {k: v for k, v in (residual or {}).items() if k not in caller}
    return caller, residual

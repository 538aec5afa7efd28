from typing import Any, Mapping

from sqlalchemy import inspect as sa_inspect


def find_unknown_model_kwargs(model, kwargs: Mapping[str, Any]) -> list[str]:
    """
    Return the keys of `kwargs` that are not mapped column attributes of `model`.
    - model: the SQLAlchemy model class (not instance)
    - kwargs: incoming payload to validate
    """
    # relationships are not writable through a payload; only column keys are allowed
    allowed = {attr.key for attr in sa_inspect(model).column_attrs}
    return sorted(k for k in kwargs if k not in allowed)


def get_required_columns(model) -> list[str]:
    """
    Attribute keys of columns that are NOT NULL, have no client/server default
    and are not auto-generated primary keys.
    """
    required = []
    for attr in sa_inspect(model).column_attrs:
        col = attr.columns[0]
        has_default = col.default is not None or col.server_default is not None
        is_auto_pk = col.primary_key and col.autoincrement in (True, "auto")
        if not col.nullable and not has_default and not is_auto_pk:
            required.append(attr.key)
    return required


def find_missing_required(model, kwargs: Mapping[str, Any]) -> list[str]:
    """Required keys absent from `kwargs` or explicitly None."""
    return [k for k in get_required_columns(model) if kwargs.get(k) is None]

"""
Store adapter: Expansion trees and Projections -> SQLAlchemy loader options.

    expansions = resolve_population([{"path": "category", "populate": "parent"}])
    stmt = select(Article).options(
        *projection_options(Article, projection, expansions),
        *build_loader_options(Article, expansions),
    )

Relations are eager-loaded with `selectinload` (one extra SELECT per level,
never a cartesian JOIN). Unknown relation names raise the store's own
InvalidRequestError, which the error classifier maps to ValidationFailure.
"""

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import defer, load_only, selectinload
from sqlalchemy.orm.exc import UnmappedColumnError

from .filters import column_attrs
from .populate import Expansion
from .projection import Projection, expansion_projection


def get_relationship(model, path: str):
    relationships = sa_inspect(model).relationships
    if path not in relationships:
        raise InvalidRequestError(f"{model.__name__} has no relationship '{path}'")
    return relationships[path]


def _local_keys(model, relationship) -> set[str]:
    """Attribute keys of the local columns a relationship load depends on (FKs for many-to-one)."""
    mapper = sa_inspect(model)
    keys = set()
    for column in relationship.local_columns:
        try:
            keys.add(mapper.get_property_by_column(column).key)
        except UnmappedColumnError:
            # column not mapped on this class (e.g. association table)
            continue
    return keys


def required_keys(model, expansions: tuple[Expansion, ...]) -> set[str]:
    """Column keys that must stay loaded: primary key plus columns needed to expand relations."""
    mapper = sa_inspect(model)
    keys = {mapper.get_property_by_column(col).key for col in mapper.primary_key}
    for expansion in expansions:
        keys |= _local_keys(model, get_relationship(model, expansion.path))
    return keys


def projection_options(model, projection: Projection | None, expansions: tuple[Expansion, ...] = ()) -> list:
    """
    Column load options for `projection` on `model`.

    Keys that are not mapped columns are skipped. Columns required to expand
    `expansions` are always loaded; the serializer hides them from the output.
    """
    if projection is None or projection.is_empty:
        return []

    columns = column_attrs(model)
    needed = required_keys(model, expansions)

    if projection.include is not None:
        keys = [k for k in columns if (k in projection.include and k not in projection.exclude) or k in needed]
        return [load_only(*(getattr(model, k) for k in keys))]

    return [defer(getattr(model, k)) for k in columns if k in projection.exclude and k not in needed]


def _loader_for(model, expansion: Expansion):
    relationship = get_relationship(model, expansion.path)
    target = relationship.mapper.class_

    sub_options = projection_options(target, expansion_projection(target, expansion.fields), expansion.children)
    sub_options += [_loader_for(target, child) for child in expansion.children]

    loader = selectinload(getattr(model, expansion.path))
    if sub_options:
        loader = loader.options(*sub_options)
    return loader


def build_loader_options(model, expansions: tuple[Expansion, ...]) -> list:
    """One selectinload option per sibling expansion, nested options chained beneath it."""
    return [_loader_for(model, expansion) for expansion in expansions]

"""
Entity -> plain dict conversion under a projection.

Only attributes that are already loaded are read, so serialization never
triggers a lazy load (which would fail outside a greenlet on an AsyncSession).
The projection is applied here as well as in the query, because the identity map
may hand back an instance whose excluded columns were loaded by an earlier query.
"""

from typing import Any

from sqlalchemy import inspect as sa_inspect

from crudkit.query.populate import Expansion
from crudkit.query.projection import Projection, expansion_projection


def serialize_entity(entity: Any, projection: Projection | None = None,
                     expansions: tuple[Expansion, ...] = ()) -> dict[str, Any]:
    state = sa_inspect(entity)
    mapper = state.mapper
    loaded = state.dict
    projection = projection or Projection()

    out: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        if attr.key in loaded and projection.allows(attr.key):
            out[attr.key] = loaded[attr.key]

    # expanded relations are always present, whatever the column projection says
    for expansion in expansions:
        relationship = mapper.relationships[expansion.path]
        child_projection = expansion_projection(relationship.mapper.class_, expansion.fields)
        value = loaded.get(expansion.path)
        if relationship.uselist:
            out[expansion.path] = [
                serialize_entity(child, child_projection, expansion.children) for child in value or ()
            ]
        else:
            out[expansion.path] = (
                serialize_entity(value, child_projection, expansion.children) if value is not None else None
            )
    return out


def serialize_many(entities, projection: Projection | None = None,
                   expansions: tuple[Expansion, ...] = ()) -> list[dict[str, Any]]:
    return [serialize_entity(entity, projection, expansions) for entity in entities]

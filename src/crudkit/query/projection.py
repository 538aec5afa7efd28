"""
Field projection with include/exclude polarity.

A projection either lists the fields to keep (`include`) or only the fields to
drop (`exclude`). Both may be present after a merge; exclusion is then applied
on top of the allow-list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


def field_names(fields: Iterable[str] | str | None) -> frozenset[str]:
    if fields is None:
        return frozenset()
    if isinstance(fields, str):
        # "name -password" style strings
        fields = fields.replace(",", " ").split()
    return frozenset(f.strip() for f in fields if f and f.strip())


@dataclass(frozen=True)
class Projection:
    include: frozenset[str] | None = None
    exclude: frozenset[str] = frozenset()

    @classmethod
    def without(cls, fields: Iterable[str] | str) -> "Projection":
        return cls(exclude=field_names(fields))

    @property
    def is_empty(self) -> bool:
        return self.include is None and not self.exclude

    def allows(self, name: str) -> bool:
        if name in self.exclude:
            return False
        return self.include is None or name in self.include

    @classmethod
    def merge(cls, requested: frozenset[str] | None, default: "Projection | None") -> "Projection":
        """
        Combine a request-level allow-list with the binding's default projection.

        - No request fields: the default applies unchanged.
        - Request fields: they become the allow-list; a default exclusion is kept
          only for fields the request did not name explicitly.
        """
        default = default or cls()
        if not requested:
            return default

        include = frozenset(requested)
        exclude = frozenset(name for name in default.exclude if name not in include)
        return cls(include=include, exclude=exclude)


# mapped class -> default projection, applied wherever that class is expanded as a relation
_DEFAULT_PROJECTIONS: dict[type, Projection] = {}


def register_default_projection(model: type, projection: Projection) -> None:
    _DEFAULT_PROJECTIONS[model] = projection


def default_projection_for(model: type) -> Projection | None:
    return _DEFAULT_PROJECTIONS.get(model)


def expansion_projection(model: type, fields: frozenset[str] | None) -> Projection:
    """Projection for an expanded relation: its `select` merged with the target model's default."""
    return Projection.merge(fields, default_projection_for(model))

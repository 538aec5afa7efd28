"""
Population resolver: declarative relation-expansion directives -> Expansion tree.

A directive is a single node or a sequence of sibling nodes. A node may carry one
nested directive, resolved relative to its relation. Resolution is capped at two
levels (declared + one nested); anything deeper is dropped, not rejected:

    [
        {"path": "author"},
        {"path": "category", "select": "name", "populate": {"path": "parent"}},
    ]

    (Expansion("author"),
     Expansion("category", fields={"name"}, children=(Expansion("parent"),)))

The resolver is pure translation. It does not know whether a relation exists;
`crudkit.query.loaders` hands the tree to the store, which rejects unknown names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from .projection import field_names

logger = logging.getLogger(__name__)

# declared level + one nested level
MAX_POPULATE_DEPTH = 2


@dataclass(frozen=True)
class PopulateNode:
    path: str
    select: frozenset[str] | None = None
    populate: "PopulateDirective | None" = None

    @classmethod
    def from_value(cls, value: Any) -> "PopulateNode":
        """Accept a PopulateNode, a relation name, or a {'path', 'select', 'populate'} mapping."""
        if isinstance(value, PopulateNode):
            return value
        if isinstance(value, str):
            return cls(path=value.strip())
        if isinstance(value, Mapping):
            if "path" not in value:
                raise TypeError(f"Populate node has no path: {value!r}")
            select = field_names(value.get("select")) or None
            return cls(path=str(value["path"]).strip(), select=select, populate=value.get("populate"))
        raise TypeError(f"Unsupported populate node: {value!r}")


PopulateDirective = Union[PopulateNode, str, Mapping[str, Any], Sequence[Union[PopulateNode, str, Mapping[str, Any]]]]


@dataclass(frozen=True)
class Expansion:
    """One relation to expand, with optional field selection on the related entity."""

    path: str
    fields: frozenset[str] | None = None
    children: tuple["Expansion", ...] = ()


def as_nodes(directive: PopulateDirective | None) -> tuple[PopulateNode, ...]:
    """
    Normalize a directive into a tuple of sibling nodes.
    A string may name several relations: "author category" -> two nodes.
    """
    if not directive:
        return ()
    if isinstance(directive, str):
        return tuple(PopulateNode(path=name) for name in directive.replace(",", " ").split())
    if isinstance(directive, (PopulateNode, Mapping)):
        return (PopulateNode.from_value(directive),)
    nodes: list[PopulateNode] = []
    for item in directive:
        nodes.extend(as_nodes(item))
    return tuple(nodes)


def _resolve_node(node: PopulateNode, depth: int) -> Expansion:
    children: tuple[Expansion, ...] = ()
    if node.populate:
        if depth < MAX_POPULATE_DEPTH:
            children = tuple(
                _resolve_node(child, depth + 1) for child in as_nodes(node.populate) if child.path
            )
        else:
            logger.debug("populate.depth_capped", extra={"path": node.path, "depth": depth})
    return Expansion(path=node.path, fields=node.select, children=children)


def resolve_population(directive: PopulateDirective | None) -> tuple[Expansion, ...]:
    """
    Translate a populate directive into a tuple of sibling Expansions.

    Returns an empty tuple (no expansion) for an absent or empty directive.
    """
    return tuple(_resolve_node(node, depth=1) for node in as_nodes(directive) if node.path)

from .parser import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    RESERVED_KEYS,
    QueryDirective,
    SortDirection,
    SortKey,
    parse_query,
)
from .populate import Expansion, PopulateNode, resolve_population
from .projection import Projection

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "RESERVED_KEYS",
    "QueryDirective",
    "SortDirection",
    "SortKey",
    "parse_query",
    "Expansion",
    "PopulateNode",
    "resolve_population",
    "Projection",
]

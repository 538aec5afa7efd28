"""
QuerySpec parser: raw query-string pairs -> QueryDirective.

Parsing is permissive by policy. Malformed input degrades to defaults and this
module never raises:

    GET /items?page=2&limit=5&sort=-likes,title&fields=title,likes&author=42

    QueryDirective(
        page=2, limit=5,
        sort=(SortKey("likes", DESC), SortKey("title", ASC)),
        fields=frozenset({"title", "likes"}),
        filters={"author": "42"},
    )

Residual values stay raw strings; the store layer coerces them to column types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

RESERVED_KEYS = frozenset({"page", "limit", "sort", "fields"})


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


@dataclass(frozen=True)
class QueryDirective:
    """Typed, immutable view of one request's query string."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort: tuple[SortKey, ...] = ()
    fields: frozenset[str] | None = None
    filters: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(raw: Any, default: int) -> int:
    """Parse a positive integer; anything else (None, '', 'abc', '0', '-3', '2.5') -> default."""
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def _split_csv(raw: Any) -> list[str]:
    if raw is None:
        return []
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def parse_sort(raw: Any) -> tuple[SortKey, ...]:
    """
    'name,-createdAt' -> (SortKey('name', ASC), SortKey('createdAt', DESC)).
    A leading '+' is accepted as explicit ascending; a bare '-' is ignored.
    """
    keys = []
    for token in _split_csv(raw):
        direction = SortDirection.ASC
        if token[0] in "+-":
            direction = SortDirection.DESC if token[0] == "-" else SortDirection.ASC
            token = token[1:].strip()
        if token:
            keys.append(SortKey(token, direction))
    return tuple(keys)


def parse_fields(raw: Any) -> frozenset[str] | None:
    names = _split_csv(raw)
    return frozenset(names) if names else None


def _items(raw: Mapping[str, Any]):
    # Starlette's QueryParams.items() yields one pair per key (last value wins);
    # plain dicts behave the same way.
    return raw.items()


def parse_query(raw: Mapping[str, Any] | None) -> QueryDirective:
    """
    Build a QueryDirective from raw query parameters.

    Args:
        raw: mapping of query-string keys to raw values (a dict or Starlette QueryParams).

    Returns:
        A fresh, immutable QueryDirective. page/limit are always >= 1, and the
        residual filter never holds page/limit/sort/fields.
    """
    if not raw:
        return QueryDirective()

    residual = {key: value for key, value in _items(raw) if key not in RESERVED_KEYS}

    return QueryDirective(
        page=_positive_int(raw.get("page"), DEFAULT_PAGE),
        limit=_positive_int(raw.get("limit"), DEFAULT_LIMIT),
        sort=parse_sort(raw.get("sort")),
        fields=parse_fields(raw.get("fields")),
        filters=MappingProxyType(residual),
    )

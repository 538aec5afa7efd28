"""
Schema helper: build a mapped model class from an explicit field-descriptor table.

Instead of inferring column types from an object literal, callers describe each
field with a `FieldDescriptor` (name, primitive kind, constraints) and each
relation with a `RelationDescriptor`. `build_model` returns a regular declarative
class that can be used as `ModelBinding.model`:

    Tag = build_model(
        "Tag",
        [
            FieldDescriptor("label", FieldKind.STRING, required=True, unique=True, max_length=50),
            FieldDescriptor("weight", FieldKind.INTEGER, default=0),
            FieldDescriptor("owner_id", FieldKind.UUID, references="authors.id"),
        ],
        relations=[RelationDescriptor("owner", target="Author", foreign_key="owner_id")],
    )

Every model gets an `id` primary key (uuid by default) and, unless
`timestamps=False`, server-managed `created_at` / `updated_at` columns.
"""

import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import mapped_column, relationship
from sqlalchemy.sql import func

from crudkit.database.base import Base

RESERVED_FIELD_NAMES = frozenset({"id", "created_at", "updated_at"})


class FieldKind(str, Enum):
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    UUID = "uuid"
    JSON = "json"


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    kind: FieldKind
    required: bool = False
    unique: bool = False
    index: bool = False
    default: Any = None
    max_length: int | None = None
    # "table.column" target for a foreign key
    references: str | None = None
    ondelete: str | None = None


@dataclass(frozen=True)
class RelationDescriptor:
    """
    Relation to another mapped class, expandable through `populate`.

    - many=False: many-to-one through the local `foreign_key` field.
    - many=True: one-to-many through `foreign_key` on the target class.
    """

    name: str
    target: str
    foreign_key: str
    many: bool = False
    back_populates: str | None = None


def _column_type(field: FieldDescriptor):
    if field.kind is FieldKind.STRING:
        return String(field.max_length or 255)
    return {
        FieldKind.TEXT: Text,
        FieldKind.INTEGER: Integer,
        FieldKind.FLOAT: Float,
        FieldKind.BOOLEAN: Boolean,
        FieldKind.DATETIME: lambda: DateTime(timezone=True),
        FieldKind.UUID: Uuid,
        FieldKind.JSON: JSON,
    }[field.kind]()


def _column(field: FieldDescriptor):
    args = [_column_type(field)]
    if field.references:
        args.append(ForeignKey(field.references, ondelete=field.ondelete))
    return mapped_column(
        *args,
        nullable=not field.required,
        unique=field.unique or None,
        index=field.index or None,
        default=field.default,
    )


def _relationship(model_name: str, relation: RelationDescriptor):
    if relation.many:
        return relationship(
            relation.target,
            foreign_keys=f"{relation.target}.{relation.foreign_key}",
            back_populates=relation.back_populates,
            lazy="select",
        )
    return relationship(
        relation.target,
        foreign_keys=f"{model_name}.{relation.foreign_key}",
        # self-referential many-to-one needs the remote side spelled out
        remote_side=f"{model_name}.id" if relation.target == model_name else None,
        back_populates=relation.back_populates,
        lazy="select",
    )


def default_table_name(model_name: str) -> str:
    """'BlogPost' -> 'blog_posts'."""
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", model_name).lower()
    return snake if snake.endswith("s") else f"{snake}s"


def build_model(
    name: str,
    fields: Iterable[FieldDescriptor],
    *,
    relations: Iterable[RelationDescriptor] = (),
    table_name: str | None = None,
    timestamps: bool = True,
    id_kind: Literal["uuid", "integer"] = "uuid",
    base: type = Base,
) -> type:
    """
    Build and register a mapped class.

    Raises:
        ValueError: duplicate or reserved field names, or a relation whose
            foreign key is not among the declared fields (many-to-one only).
    """
    fields = list(fields)
    relations = list(relations)

    names = [f.name for f in fields] + [r.name for r in relations]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate field name(s) for {name}: {', '.join(duplicates)}")
    reserved = sorted(RESERVED_FIELD_NAMES.intersection(names))
    if reserved:
        raise ValueError(f"Reserved field name(s) for {name}: {', '.join(reserved)}")

    declared = {f.name for f in fields}
    for relation in relations:
        if not relation.many and relation.foreign_key not in declared:
            raise ValueError(f"Relation '{relation.name}' of {name} uses undeclared field '{relation.foreign_key}'")

    attrs: dict[str, Any] = {"__tablename__": table_name or default_table_name(name)}

    if id_kind == "integer":
        attrs["id"] = mapped_column(Integer, primary_key=True, autoincrement=True)
    else:
        attrs["id"] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    for field in fields:
        attrs[field.name] = _column(field)

    if timestamps:
        attrs["created_at"] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
        attrs["updated_at"] = mapped_column(
            DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
        )

    for relation in relations:
        attrs[relation.name] = _relationship(name, relation)

    attrs["__repr__"] = lambda self: f"<{name}(id={self.id!r})>"

    return type(name, (base,), attrs)

"""
Generic CRUD repository bound to a ModelBinding.

It composes the query package (parsed directive, filters, projection, population)
into single store statements and raises only app-level exceptions
(`crudkit.exceptions`). Transaction control stays with the caller: the repository
flushes but never commits.

Logging:
- DEBUG: start event with model name and provided keys (never values).
- INFO: expected client errors (invalid fields, missing required, duplicate, not found).
- INFO: success event with ids/counts and duration_ms.
- Unexpected store failures are logged by the error mapper with a stack trace.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from crudkit.exceptions.base import DuplicateError, InvalidFieldError, NotFoundError, ValidationFailureError
from crudkit.exceptions.mapper import db_error_handler
from crudkit.query.filters import build_conditions, coerce_value, column_attrs, merge_filters
from crudkit.query.loaders import build_loader_options, projection_options
from crudkit.query.parser import QueryDirective, SortKey
from crudkit.query.populate import Expansion, PopulateDirective, resolve_population
from crudkit.query.projection import Projection
from crudkit.repositories.binding import ModelBinding
from crudkit.validators.model_validators import find_missing_required, find_unknown_model_kwargs

ModelType = TypeVar("ModelType")

logger = logging.getLogger(__name__)


@dataclass
class Page(Generic[ModelType]):
    """One page of entities plus the total count of matches, ignoring pagination."""

    items: list[ModelType]
    total: int
    projection: Projection = field(default_factory=Projection)
    expansions: tuple[Expansion, ...] = ()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class CrudRepository(Generic[ModelType]):
    """
    Five store operations over `binding.model`.

    Filters given by application code are strict (unknown keys raise
    InvalidFieldError). Residual filters coming from a request query string are
    lenient (unknown keys are dropped with a warning).
    """

    def __init__(self, binding: ModelBinding, db: AsyncSession):
        self.binding = binding
        self.model = binding.model
        self.db = db

    @property
    def model_name(self) -> str:
        return self.model.__name__

    def _pk_attr(self):
        mapper = sa_inspect(self.model)
        return getattr(self.model, mapper.get_property_by_column(mapper.primary_key[0]).key)

    def _coerce_payload(self, data: Mapping[str, Any]) -> dict[str, Any]:
        columns = column_attrs(self.model)
        return {k: coerce_value(columns[k].columns[0], v, null_literal=False) for k, v in data.items()}

    def _check_payload_keys(self, data: Mapping[str, Any], operation: str) -> None:
        unknown = find_unknown_model_kwargs(self.model, data)
        if unknown:
            logger.info(
                f"repo.{operation}.invalid_fields",
                extra={"model": self.model_name, "operation": operation, "invalid_fields": unknown},
            )
            raise InvalidFieldError(f"Unknown field(s) for {self.model_name}: {', '.join(unknown)}", fields=unknown)

    def _order_by(self, sort: tuple[SortKey, ...]) -> list:
        columns = column_attrs(self.model)
        clauses, ignored = [], []
        for key in sort:
            if key.field not in columns:
                ignored.append(key.field)
                continue
            attr = getattr(self.model, key.field)
            clauses.append(attr.desc() if key.descending else attr.asc())
        if ignored:
            logger.warning("repo.get_many.ignored_sort_fields",
                           extra={"model": self.model_name, "ignored_fields": ignored})
        if clauses:
            # stable paging across equal sort values
            clauses.append(self._pk_attr().asc())
        return clauses

    # =================================================================================================================
    # Create
    # =================================================================================================================

    async def create(self, data: Mapping[str, Any], check: Mapping[str, Any] | None = None) -> ModelType:
        """
        Insert one entity.

        Args:
            data: column values for the new entity.
            check: optional partial-field match. If any entity matches, DuplicateError
                is raised and nothing is written.

        Raises:
            InvalidFieldError: unknown keys in `data` or `check`.
            ValidationFailureError: missing required fields or uncastable values.
            DuplicateError: `check` matched, or the store's unique index rejected the row.
        """
        logger.debug(
            "repo.create.start",
            extra={"model": self.model_name, "operation": "create", "provided_keys": sorted(data)},
        )

        self._check_payload_keys(data, "create")

        missing = find_missing_required(self.model, data)
        if missing:
            logger.info(
                "repo.create.missing_required",
                extra={"model": self.model_name, "operation": "create", "missing_fields": missing},
            )
            raise ValidationFailureError(
                f"Missing required field(s): {', '.join(missing)} for {self.model_name}", fields=missing
            )

        payload = self._coerce_payload(data)
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            if check:
                # best effort: the unique index stays the authoritative guard
                conditions = build_conditions(self.model, check, strict=True)
                existing = await self.db.scalar(select(self._pk_attr()).where(*conditions).limit(1))
                if existing is not None:
                    fields = sorted(check)
                    logger.info(
                        "repo.create.duplicate_check",
                        extra={"model": self.model_name, "operation": "create", "conflict_fields": fields},
                    )
                    raise DuplicateError(
                        f"{self.model_name} already exists for field(s): {', '.join(fields)}", fields=fields
                    )

            entity = self.model(**payload)
            self.db.add(entity)
            await self.db.flush()
            await self.db.refresh(entity)

        logger.info(
            "repo.create.success",
            extra={
                "model": self.model_name,
                "operation": "create",
                "id": getattr(entity, "id", None),
                "duration_ms": _elapsed_ms(start),
            },
        )
        return entity

    # =================================================================================================================
    # Read
    # =================================================================================================================

    async def get_one(self, filter: Mapping[str, Any], populate: PopulateDirective | None = None) -> ModelType:
        """
        First entity matching `filter`, with the binding's projection and `populate` applied.

        Raises:
            NotFoundError: zero matches.
        """
        start = time.perf_counter()
        logger.debug("repo.get_one.start",
                     extra={"model": self.model_name, "operation": "get_one", "filter_keys": sorted(filter or {})})

        async with db_error_handler(self.db, self.model_name):
            conditions = build_conditions(self.model, filter, strict=True)
            expansions = resolve_population(populate)
            stmt = (
                select(self.model)
                .where(*conditions)
                .options(
                    *projection_options(self.model, self.binding.default_projection, expansions),
                    *build_loader_options(self.model, expansions),
                )
                .limit(1)
                .execution_options(populate_existing=True)
            )
            entity = (await self.db.execute(stmt)).scalars().first()

        if entity is None:
            logger.info("repo.get_one.not_found",
                        extra={"model": self.model_name, "operation": "get_one", "filter_keys": sorted(filter or {})})
            raise NotFoundError(f"{self.model_name} not found")

        logger.debug("repo.get_one.success",
                     extra={"model": self.model_name, "operation": "get_one", "duration_ms": _elapsed_ms(start)})
        return entity

    async def get_many(
        self,
        filter: Mapping[str, Any] | None,
        query: QueryDirective,
        populate: PopulateDirective | None = None,
    ) -> Page[ModelType]:
        """
        One page of entities matching the caller filter merged with the request's residual filter.

        Caller keys win over residual keys on collision. The total is a separate
        COUNT over the same merged filter. An empty page is a success.
        """
        start = time.perf_counter()
        logger.debug(
            "repo.get_many.start",
            extra={
                "model": self.model_name,
                "operation": "get_many",
                "page": query.page,
                "limit": query.limit,
                "filter_keys": sorted(filter or {}),
                "residual_keys": sorted(query.filters),
            },
        )

        caller, residual = merge_filters(filter, query.filters)
        projection = Projection.merge(query.fields, self.binding.default_projection)

        async with db_error_handler(self.db, self.model_name):
            conditions = build_conditions(self.model, caller, strict=True)
            conditions += build_conditions(self.model, residual, strict=False)
            expansions = resolve_population(populate)

            total = await self.db.scalar(select(func.count()).select_from(self.model).where(*conditions))

            stmt = (
                select(self.model)
                .where(*conditions)
                .order_by(*self._order_by(query.sort))
                .offset(query.offset)
                .limit(query.limit)
                .options(
                    *projection_options(self.model, projection, expansions),
                    *build_loader_options(self.model, expansions),
                )
                .execution_options(populate_existing=True)
            )
            items = list((await self.db.execute(stmt)).scalars().all())

        logger.info(
            "repo.get_many.success",
            extra={
                "model": self.model_name,
                "operation": "get_many",
                "returned": len(items),
                "total": total,
                "duration_ms": _elapsed_ms(start),
            },
        )
        return Page(items=items, total=total or 0, projection=projection, expansions=expansions)

    # =================================================================================================================
    # Update
    # =================================================================================================================

    async def update(self, filter: Mapping[str, Any], data: Mapping[str, Any]) -> ModelType:
        """
        Find one entity by `filter` and update it in a single UPDATE ... RETURNING statement.

        Empty `data` writes nothing and returns the current entity.

        Raises:
            NotFoundError: zero matches (nothing is written).
        """
        logger.debug(
            "repo.update.start",
            extra={"model": self.model_name, "operation": "update", "provided_keys": sorted(data)},
        )
        self._check_payload_keys(data, "update")

        if not data:
            logger.debug("repo.update.noop", extra={"model": self.model_name, "operation": "update"})
            return await self.get_one(filter)

        payload = self._coerce_payload(data)
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            conditions = build_conditions(self.model, filter, strict=True)
            pk = self._pk_attr()
            target = select(pk).where(*conditions).limit(1).scalar_subquery()
            stmt = (
                update(self.model)
                .where(pk == target)
                .values(**payload)
                .returning(self.model)
                .execution_options(populate_existing=True)
            )
            entity = (await self.db.execute(stmt)).scalars().first()

        if entity is None:
            logger.info("repo.update.not_found",
                        extra={"model": self.model_name, "operation": "update", "filter_keys": sorted(filter or {})})
            raise NotFoundError(f"{self.model_name} not found")

        logger.info(
            "repo.update.success",
            extra={
                "model": self.model_name,
                "operation": "update",
                "id": getattr(entity, "id", None),
                "updated_fields": sorted(payload),
                "duration_ms": _elapsed_ms(start),
            },
        )
        return entity

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, filter: Mapping[str, Any]) -> int:
        """
        Delete every entity matching `filter` in one statement and return the count.

        Raises:
            NotFoundError: zero matches.
        """
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            conditions = build_conditions(self.model, filter, strict=True)
            if not conditions:
                logger.warning("repo.delete.unfiltered", extra={"model": self.model_name, "operation": "delete"})
            result = await self.db.execute(delete(self.model).where(*conditions))
            deleted = result.rowcount

        if not deleted:
            logger.info("repo.delete.not_found",
                        extra={"model": self.model_name, "operation": "delete", "filter_keys": sorted(filter or {})})
            raise NotFoundError(f"{self.model_name} not found")

        logger.info(
            "repo.delete.success",
            extra={"model": self.model_name, "operation": "delete", "deleted": deleted,
                   "duration_ms": _elapsed_ms(start)},
        )
        return deleted

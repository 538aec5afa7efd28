"""
Request-level CRUD entry points.

Each entry point runs one repository operation against `binding.model`, commits
successful writes, serializes the outcome under the effective projection and
returns the envelope response. On failure the session is rolled back and the
error is written directly (ErrorPropagation.DIRECT) or handed to the host
(ErrorPropagation.DELEGATE).

    @router.get("/articles")
    async def list_articles(request: Request, db: AsyncSession = Depends(get_async_session)):
        ctx = OperationContext.from_settings(request, db)
        return await crud.get_many(ArticleBinding, ctx, populate="author")
"""

import logging
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from crudkit.api.v1.context import ErrorPropagation, OperationContext
from crudkit.api.v1.error_handlers import normalize_error
from crudkit.api.v1.responses import write_success
from crudkit.exceptions.base import ValidationFailureError
from crudkit.exceptions.mapper import to_app_error
from crudkit.query.parser import QueryDirective, parse_query
from crudkit.query.populate import PopulateDirective, resolve_population
from crudkit.repositories.binding import ModelBinding
from crudkit.repositories.crud_repository import CrudRepository
from crudkit.repositories.serializers import serialize_entity, serialize_many

logger = logging.getLogger(__name__)


async def _rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.exception("crud.rollback_failed")


async def _fail(binding: ModelBinding, ctx: OperationContext, exc: Exception) -> Response:
    await _rollback(ctx.db)

    if ctx.propagation is ErrorPropagation.DIRECT:
        return normalize_error(exc, ctx.environment)

    mapped = to_app_error(exc, binding.name)
    if mapped is not exc:
        # delegates and host handlers can still reach the original failure
        mapped.__cause__ = exc
    if ctx.error_delegate is not None:
        return await ctx.error_delegate(mapped)
    raise mapped


async def _payload(ctx: OperationContext, data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if data is None:
        data = await ctx.request.json()
    if not isinstance(data, Mapping):
        raise ValidationFailureError("Request body must be a JSON object")
    return data


async def create(
    binding: ModelBinding,
    ctx: OperationContext,
    data: Mapping[str, Any] | None = None,
    *,
    check: Mapping[str, Any] | None = None,
) -> Response:
    """Insert one entity (body read from the request when `data` is None). 201 on success."""
    try:
        payload = await _payload(ctx, data)
        entity = await CrudRepository(binding, ctx.db).create(payload, check=check)
        body = serialize_entity(entity, binding.default_projection)
        await ctx.db.commit()
    except Exception as exc:
        return await _fail(binding, ctx, exc)
    return write_success(f"{binding.name} created successfully", body, status_code=201)


async def get_one(
    binding: ModelBinding,
    ctx: OperationContext,
    filter: Mapping[str, Any],
    *,
    populate: PopulateDirective | None = None,
) -> Response:
    try:
        entity = await CrudRepository(binding, ctx.db).get_one(filter, populate)
        body = serialize_entity(entity, binding.default_projection, resolve_population(populate))
    except Exception as exc:
        return await _fail(binding, ctx, exc)
    return write_success(f"{binding.name} fetched successfully", body)


async def get_many(
    binding: ModelBinding,
    ctx: OperationContext,
    filter: Mapping[str, Any] | None = None,
    query: QueryDirective | Mapping[str, str] | None = None,
    *,
    populate: PopulateDirective | None = None,
) -> Response:
    """
    One page of entities plus `doc_length`, the total count of matches.

    `query` defaults to the request's query string.
    """
    if not isinstance(query, QueryDirective):
        query = parse_query(ctx.request.query_params if query is None else query)
    try:
        page = await CrudRepository(binding, ctx.db).get_many(filter, query, populate)
        body = serialize_many(page.items, page.projection, page.expansions)
    except Exception as exc:
        return await _fail(binding, ctx, exc)
    return write_success(f"{binding.name} list fetched successfully", body, doc_length=page.total)


async def update(
    binding: ModelBinding,
    ctx: OperationContext,
    filter: Mapping[str, Any],
    data: Mapping[str, Any] | None = None,
) -> Response:
    try:
        payload = await _payload(ctx, data)
        entity = await CrudRepository(binding, ctx.db).update(filter, payload)
        body = serialize_entity(entity, binding.default_projection)
        await ctx.db.commit()
    except Exception as exc:
        return await _fail(binding, ctx, exc)
    return write_success(f"{binding.name} updated successfully", body)


async def delete(binding: ModelBinding, ctx: OperationContext, filter: Mapping[str, Any]) -> Response:
    try:
        deleted = await CrudRepository(binding, ctx.db).delete(filter)
        await ctx.db.commit()
    except Exception as exc:
        return await _fail(binding, ctx, exc)
    return write_success(f"{binding.name} deleted successfully", {"deleted": deleted})

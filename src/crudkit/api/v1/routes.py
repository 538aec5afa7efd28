"""
Example routes for the bundled models, built on the CRUD entry points.

Every handler is a thin adapter: it fixes the caller-side filter, check and
populate directives and leaves query parsing, projection and envelopes to
`crudkit.api.v1.crud`.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from crudkit.api.v1 import crud
from crudkit.api.v1.context import OperationContext
from crudkit.core.dependencies import get_operation_context
from crudkit.models.bindings import ArticleBinding, AuthorBinding, CategoryBinding

router = APIRouter(prefix="/api/v1")

ARTICLE_POPULATE = [
    {"path": "author", "select": "name email"},
    {"path": "category", "select": "name", "populate": {"path": "parent", "select": "name"}},
]


# --- authors ---

@router.post("/authors", status_code=201)
async def create_author(payload: dict[str, Any] = Body(...), ctx: OperationContext = Depends(get_operation_context)):
    check = {"email": payload["email"]} if payload.get("email") else None
    return await crud.create(AuthorBinding, ctx, payload, check=check)


@router.get("/authors")
async def list_authors(ctx: OperationContext = Depends(get_operation_context)):
    return await crud.get_many(AuthorBinding, ctx)


@router.get("/authors/{author_id}")
async def get_author(author_id: str, ctx: OperationContext = Depends(get_operation_context)):
    return await crud.get_one(AuthorBinding, ctx, {"id": author_id})


@router.get("/authors/{author_id}/articles")
async def list_author_articles(author_id: str, ctx: OperationContext = Depends(get_operation_context)):
    return await crud.get_many(ArticleBinding, ctx, {"author_id": author_id})


# --- categories ---

@router.post("/categories", status_code=201)
async def create_category(payload: dict[str, Any] = Body(...), ctx: OperationContext = Depends(get_operation_context)):
    return await crud.create(CategoryBinding, ctx, payload)


# --- articles ---

@router.post("/articles", status_code=201)
async def create_article(payload: dict[str, Any] = Body(...), ctx: OperationContext = Depends(get_operation_context)):
    return await crud.create(ArticleBinding, ctx, payload)


@router.get("/articles")
async def list_articles(ctx: OperationContext = Depends(get_operation_context)):
    return await crud.get_many(ArticleBinding, ctx)


@router.get("/articles/{article_id}")
async def get_article(article_id: str, ctx: OperationContext = Depends(get_operation_context)):
    return await crud.get_one(ArticleBinding, ctx, {"id": article_id}, populate=ARTICLE_POPULATE)


@router.patch("/articles/{article_id}")
async def update_article(article_id: str, payload: dict[str, Any] = Body(...),
                         ctx: OperationContext = Depends(get_operation_context)):
    return await crud.update(ArticleBinding, ctx, {"id": article_id}, payload)


@router.delete("/articles/{article_id}")
async def delete_article(article_id: str, ctx: OperationContext = Depends(get_operation_context)):
    return await crud.delete(ArticleBinding, ctx, {"id": article_id})

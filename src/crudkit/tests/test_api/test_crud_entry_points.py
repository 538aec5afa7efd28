import json
import uuid

import pytest
from sqlalchemy import func, select
from starlette.requests import Request

from crudkit.api.v1 import crud
from crudkit.api.v1.context import ErrorPropagation, OperationContext
from crudkit.api.v1.responses import write_success
from crudkit.exceptions.base import NotFoundError, ValidationFailureError
from crudkit.models import Article, ArticleBinding, AuthorBinding


def make_request(query_string: str = "", body=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"content-type", b"application/json")],
        "query_string": query_string.encode(),
    }
    if isinstance(body, bytes):
        payload = body
    else:
        payload = json.dumps(body).encode() if body is not None else b""

    async def receive():
        return {"type": "http.request", "body": payload, "more_body": False}

    return Request(scope, receive)


def body_of(response) -> dict:
    return json.loads(response.body)


@pytest.fixture
def context(db_session):
    def _make(query_string: str = "", body=None, **kwargs) -> OperationContext:
        kwargs.setdefault("environment", "production")
        return OperationContext(request=make_request(query_string, body), db=db_session, **kwargs)

    return _make


@pytest.mark.asyncio
class TestCreateEntryPoint:

    async def test_reads_body_and_hides_default_excluded_fields(self, context):
        ctx = context(body={"name": "Ada", "email": "ada@example.com", "password_hash": "x"})

        response = await crud.create(AuthorBinding, ctx)

        assert response.status_code == 201
        body = body_of(response)
        assert body["success"] is True
        assert body["data"]["email"] == "ada@example.com"
        assert "password_hash" not in body["data"]
        assert "doc_length" not in body

    async def test_duplicate_check_is_409(self, context, author):
        response = await crud.create(
            AuthorBinding,
            context(),
            {"name": "Ada 2", "email": "ada@example.com", "password_hash": "x"},
            check={"email": "ada@example.com"},
        )
        assert response.status_code == 409
        assert body_of(response)["error"] == "DuplicateEntity"

    async def test_non_object_body_is_validation_failure(self, context):
        response = await crud.create(AuthorBinding, context(body=[1, 2]))
        assert response.status_code == 400
        assert body_of(response)["error"] == "ValidationFailure"


@pytest.mark.asyncio
class TestGetManyEntryPoint:

    async def test_scenario_from_request_query_string(self, context, seeded_articles):
        """
        Behavior:
                - GET ?page=2&limit=5&sort=-likes&fields=title,likes&author_id=<id> over 12 matches
                  returns items 6..10, each with only title and likes, and doc_length 12.
        """
        main = seeded_articles["author"]
        ctx = context(f"page=2&limit=5&sort=-likes&fields=title,likes&author_id={main.id}")

        response = await crud.get_many(ArticleBinding, ctx)

        assert response.status_code == 200
        body = body_of(response)
        assert body["doc_length"] == 12
        assert [item["likes"] for item in body["data"]] == [7, 6, 5, 4, 3]
        assert all(set(item) == {"title", "likes"} for item in body["data"])

    async def test_empty_page_is_success_with_zero_count(self, context):
        body = body_of(await crud.get_many(ArticleBinding, context(), query={"likes": "5"}))
        assert body == {"message": body["message"], "data": [], "success": True, "doc_length": 0}


@pytest.mark.asyncio
class TestFailurePropagation:

    async def test_direct_writes_envelope(self, context):
        response = await crud.get_one(ArticleBinding, context(), {"id": str(uuid.uuid4())})
        assert response.status_code == 404
        assert "stack" not in body_of(response)

    async def test_direct_in_development_includes_stack(self, context):
        response = await crud.get_one(ArticleBinding, context(environment="development"), {"id": str(uuid.uuid4())})
        assert body_of(response)["stack"]["type"] == "NotFoundError"

    async def test_delegate_hands_classified_error_to_delegate(self, context):
        seen = []

        async def delegate(exc):
            seen.append(exc)
            return write_success("handled elsewhere")

        ctx = context(propagation=ErrorPropagation.DELEGATE, error_delegate=delegate)
        response = await crud.delete(ArticleBinding, ctx, {"id": str(uuid.uuid4())})

        assert response.status_code == 200
        assert len(seen) == 1 and isinstance(seen[0], NotFoundError)

    async def test_delegate_without_handler_reraises(self, context):
        ctx = context(propagation=ErrorPropagation.DELEGATE)
        with pytest.raises(NotFoundError):
            await crud.update(ArticleBinding, ctx, {"id": str(uuid.uuid4())}, {"likes": 1})

    async def test_delegated_error_keeps_original_cause(self, context):
        seen = []

        async def delegate(exc):
            seen.append(exc)
            return write_success("handled elsewhere")

        ctx = context(body=b"{not json", propagation=ErrorPropagation.DELEGATE, error_delegate=delegate)
        await crud.create(ArticleBinding, ctx)

        assert isinstance(seen[0], ValidationFailureError)
        assert isinstance(seen[0].__cause__, ValueError)

    async def test_reraised_error_keeps_original_cause(self, context):
        ctx = context(body=b"{not json", propagation=ErrorPropagation.DELEGATE)
        with pytest.raises(ValidationFailureError) as exc_info:
            await crud.create(ArticleBinding, ctx)
        assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
class TestWrites:

    async def test_update_commits_and_returns_entity(self, context, create_article, author, db_session):
        created = await create_article(author, title="Old")

        response = await crud.update(ArticleBinding, context(), {"id": str(created.id)}, {"title": "New"})

        assert body_of(response)["data"]["title"] == "New"
        # committed: no transaction left open on the session
        assert not db_session.in_transaction()
        assert await db_session.scalar(select(Article.title).where(Article.id == created.id)) == "New"

    async def test_delete_reports_count(self, context, seeded_articles, db_session):
        response = await crud.delete(ArticleBinding, context(), {"author_id": str(seeded_articles["other"].id)})
        assert body_of(response)["data"] == {"deleted": 3}
        assert await db_session.scalar(select(func.count()).select_from(Article)) == 12

import pytest

from crudkit.query.parser import parse_query
from crudkit.query.populate import resolve_population
from crudkit.query.projection import Projection
from crudkit.repositories.serializers import serialize_entity, serialize_many


@pytest.mark.asyncio
class TestSerializeEntity:

    async def test_projection_filters_loaded_columns(self, author):
        data = serialize_entity(author, Projection.without("password_hash"))
        assert "password_hash" not in data
        assert data["email"] == "ada@example.com"
        assert "id" in data

    async def test_include_projection_hides_primary_key(self, create_article, author):
        article = await create_article(author, title="T", likes=3)
        assert serialize_entity(article, Projection(include=frozenset({"title", "likes"}))) == {"title": "T", "likes": 3}

    async def test_expansions_are_serialized_with_their_own_selection(self, article_repo, create_article,
                                                                      author, category_tree):
        _, child = category_tree
        created = await create_article(author, category_id=child.id)
        populate = [
            {"path": "author", "select": "name"},
            {"path": "category", "select": "name", "populate": {"path": "parent", "select": "name"}},
        ]
        article = await article_repo.get_one({"id": created.id}, populate=populate)

        data = serialize_entity(article, Projection(include=frozenset({"title"})), resolve_population(populate))

        assert data == {
            "title": "Untitled",
            "author": {"name": "Ada"},
            "category": {"name": "Python", "parent": {"name": "Tech"}},
        }

    async def test_missing_many_to_one_is_none(self, article_repo, create_article, author):
        created = await create_article(author)
        article = await article_repo.get_one({"id": created.id}, populate="category")
        assert serialize_entity(article, None, resolve_population("category"))["category"] is None

    async def test_expanded_relation_uses_target_default_projection(self, article_repo, create_article, author):
        created = await create_article(author)
        article = await article_repo.get_one({"id": created.id}, populate="author")

        data = serialize_entity(article, None, resolve_population("author"))

        assert data["author"]["email"] == "ada@example.com"
        assert "password_hash" not in data["author"]

    async def test_expanded_relation_select_can_name_excluded_field(self, article_repo, create_article, author):
        created = await create_article(author)
        populate = {"path": "author", "select": "name password_hash"}
        article = await article_repo.get_one({"id": created.id}, populate=populate)

        data = serialize_entity(article, None, resolve_population(populate))

        assert data["author"] == {"name": "Ada", "password_hash": "hashed-pw"}

    async def test_one_to_many_is_a_list(self, author_repo, seeded_articles):
        main = seeded_articles["author"]
        found = await author_repo.get_one({"id": main.id}, populate={"path": "articles", "select": "likes"})
        data = serialize_entity(found, None, resolve_population({"path": "articles", "select": "likes"}))
        assert sorted(a["likes"] for a in data["articles"]) == list(range(1, 13))


@pytest.mark.asyncio
async def test_serialize_many_applies_page_projection(article_repo, seeded_articles):
    page = await article_repo.get_many(None, parse_query({"fields": "title", "limit": "2", "sort": "title"}))
    assert serialize_many(page.items, page.projection, page.expansions) == [
        {"title": "Article 01"},
        {"title": "Article 02"},
    ]

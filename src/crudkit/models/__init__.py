r"""
Centralized access to the bundled models.

    from crudkit.models import Article, Author, Category

Importing this package registers every model on `Base.metadata`, which is what
`Base.metadata.create_all` (tests, local setup) relies on.
"""

from .author import Author
from .category import Category
from .article import Article
from .bindings import ArticleBinding, AuthorBinding, CategoryBinding

__all__ = [
    "Author",
    "Category",
    "Article",
    "ArticleBinding",
    "AuthorBinding",
    "CategoryBinding",
]

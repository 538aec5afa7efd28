"""Default bindings for the bundled models."""

from crudkit.query.projection import Projection
from crudkit.repositories.binding import ModelBinding

from .article import Article
from .author import Author
from .category import Category

AuthorBinding = ModelBinding(Author, default_projection=Projection.without("password_hash"))
CategoryBinding = ModelBinding(Category)
ArticleBinding = ModelBinding(Article)

from dataclasses import dataclass

from crudkit.query.projection import Projection, register_default_projection


@dataclass(frozen=True)
class ModelBinding:
    """
    Application-owned pairing of a mapped class with its default projection.

    The CRUD layer only reads a binding; it never creates or mutates one.
    A default projection is also registered for the model, so it applies when
    the model is expanded as a relation of another binding.

        ArticleBinding = ModelBinding(Article)
        AuthorBinding = ModelBinding(Author, Projection.without("password_hash"))
    """

    model: type
    default_projection: Projection | None = None

    def __post_init__(self):
        if self.default_projection is not None:
            register_default_projection(self.model, self.default_projection)

    @property
    def name(self) -> str:
        return self.model.__name__

from sqlalchemy import String, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from crudkit.database.base import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .article import Article


class Category(Base):
    """Article category. Categories nest through `parent`."""
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # --- Relationships ---

    # Many-to-One (self): the enclosing category
    parent: Mapped[Optional["Category"]] = relationship(
        "Category",
        remote_side=[id],
        back_populates="children",
    )

    children: Mapped[list["Category"]] = relationship("Category", back_populates="parent")

    articles: Mapped[list["Article"]] = relationship("Article", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"

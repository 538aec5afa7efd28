from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from crudkit.database.base import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .author import Author
    from .category import Category


class Article(Base):
    """
    Article written by an Author, optionally filed under a Category.

    Both relations can be expanded with `populate`:
        [{"path": "author", "select": "name"}, {"path": "category", "populate": {"path": "parent"}}]
    """
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    author_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("authors.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # --- Relationships ---

    author: Mapped["Author"] = relationship("Author", back_populates="articles")

    category: Mapped[Optional["Category"]] = relationship("Category", back_populates="articles")

    def __repr__(self) -> str:
        return f"<Article(id={self.id}, title={self.title})>"

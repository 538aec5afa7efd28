from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from crudkit.database.base import Base
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .article import Article


class Author(Base):
    """
    Author of articles.

    `password_hash` is stored but hidden by the default projection of
    `AuthorBinding` (see crudkit.models.bindings).
    """
    __tablename__ = "authors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # unique: the store's authoritative guard against duplicate authors
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

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

    articles: Mapped[list["Article"]] = relationship(
        "Article",
        back_populates="author",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Author(id={self.id}, email={self.email})>"

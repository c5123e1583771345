"""
Genre Model

Represents a genre tag in the catalog.

A book can carry multiple genres (e.g., "Science Fiction" and "Dystopian");
shared genres are what the content-based scorer matches on.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.book import Book


class Genre(Base):
    """
    Genre model representing book categories.

    Table: genres

    Relationships:
    - books: Many-to-Many relationship through book_genres table

    Example:
        genre = Genre(
            name="Science Fiction",
            description="Fiction dealing with futuristic concepts...",
        )
    """

    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True)

    # unique=True prevents duplicate genre names
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
        comment="Genre name (e.g., 'Science Fiction', 'Mystery')"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Description of what this genre encompasses"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    books: Mapped[List["Book"]] = relationship(
        "Book",
        secondary="book_genres",
        back_populates="genres",
    )

    def __repr__(self) -> str:
        return f"Genre(id={self.id}, name='{self.name}')"

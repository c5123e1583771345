"""
Book Model

The central model of the catalog, plus the book_genres association table
linking books to their genre tags.

Ratings are NOT stored on the book: average rating and review count are
always recomputed from the reviews table when a book is read, so a
recommendation can never carry a stale aggregate.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.favorite import UserFavorite
    from app.models.genre import Genre
    from app.models.review import Review


# =============================================================================
# Association Tables
# =============================================================================
book_genres = Table(
    "book_genres",
    Base.metadata,
    Column(
        "book_id",
        Integer,
        ForeignKey("books.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "genre_id",
        Integer,
        ForeignKey("genres.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    comment="Association table linking books to their genres",
)


class Book(Base):
    """
    Book model representing books in the catalog.

    Table: books

    Fields:
    - title: Book title (required)
    - author: Author display name (required)
    - description: Book summary/description
    - published_year: Year of first publication
    - price: Book price with 2 decimal precision
    - cover_image_url: Cover art location

    Relationships:
    - genres: Many-to-Many (a book can carry multiple genre tags)
    - reviews: One-to-Many
    - favorites: One-to-Many

    Example:
        book = Book(
            title="1984",
            author="George Orwell",
            published_year=1949,
            price=Decimal("12.99"),
        )
    """

    __tablename__ = "books"

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Basic Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
        comment="Author display name"
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Book description or summary"
    )

    published_year: Mapped[int | None] = mapped_column(
        Integer,
        index=True,
        nullable=True,
        comment="Year of publication"
    )

    # Numeric(10, 2) = up to 10 digits, 2 after decimal point
    price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Book price in USD"
    )

    cover_image_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="URL of the cover image"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    # Client-side defaults keep sub-second precision, which the
    # "most recently added" ordering of similar books relies on.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    genres: Mapped[list["Genre"]] = relationship(
        "Genre",
        secondary=book_genres,
        back_populates="books",
    )

    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    favorites: Mapped[list["UserFavorite"]] = relationship(
        "UserFavorite",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', author='{self.author}')"

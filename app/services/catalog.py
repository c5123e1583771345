"""
Catalog Reader

Loads books together with their genre tags and rating aggregates and turns
them into plain BookSummary objects right after the read, so the scoring
code never handles ORM instances.

Ratings are aggregated from the reviews table on every call; nothing here
is cached.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.models import Book, Review


@dataclass
class BookSummary:
    """Read-only view of a catalog book with its current rating aggregates."""

    id: int
    title: str
    author: str
    description: str | None = None
    cover_image_url: str | None = None
    published_year: int | None = None
    created_at: datetime | None = None
    genres: list[str] = field(default_factory=list)
    average_rating: float = 0.0
    total_reviews: int = 0


@dataclass
class Recommendation:
    """
    A single recommended book with the reason it was picked.

    `score` only orders candidates inside a scorer and is never returned
    to API clients; `trending_score` is informational metadata.
    """

    id: int
    title: str
    author: str
    average_rating: float
    total_reviews: int
    reason: str
    confidence: float
    cover_image_url: str | None = None
    genres: list[str] = field(default_factory=list)
    published_year: int | None = None
    trending_score: float | None = None
    score: float | None = None

    @classmethod
    def from_book(
        cls,
        book: "BookSummary",
        reason: str,
        confidence: float,
        **extra,
    ) -> "Recommendation":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            average_rating=book.average_rating,
            total_reviews=book.total_reviews,
            reason=reason,
            confidence=confidence,
            cover_image_url=book.cover_image_url,
            genres=list(book.genres),
            **extra,
        )


def round_rating(value: float) -> float:
    """
    Round a rating to one decimal place, halves rounding up.

    >>> round_rating(4.25)
    4.3
    """
    return math.floor(value * 10 + 0.5) / 10


def average_rating(rating_sum: float, count: int) -> float:
    """
    Mean of a book's ratings rounded to one decimal, 0 when unrated.

    >>> average_rating(12, 3)
    4.0
    >>> average_rating(0, 0)
    0
    """
    if not count:
        return 0
    return round_rating(rating_sum / count)


def get_rating_stats(db: Session, book_ids: Iterable[int]) -> dict[int, tuple[float, int]]:
    """
    Aggregate ratings for the given books.

    Returns:
        Mapping of book id -> (average_rating, total_reviews); books without
        reviews are absent.
    """
    ids = list(set(book_ids))
    if not ids:
        return {}

    rows = db.execute(
        select(
            Review.book_id,
            func.sum(Review.rating),
            func.count(Review.id),
        )
        .where(Review.book_id.in_(ids))
        .group_by(Review.book_id)
    ).all()

    return {
        book_id: (average_rating(rating_sum, count), count)
        for book_id, rating_sum, count in rows
        if count
    }


def to_summary(book: Book, stats: tuple[float, int] | None = None) -> BookSummary:
    """Build a BookSummary from a loaded Book (genres must be loaded)."""
    avg, total = stats if stats else (0, 0)
    return BookSummary(
        id=book.id,
        title=book.title,
        author=book.author,
        description=book.description,
        cover_image_url=book.cover_image_url,
        published_year=book.published_year,
        created_at=book.created_at,
        genres=[g.name for g in book.genres],
        average_rating=avg,
        total_reviews=total,
    )


def load_books(db: Session, book_ids: Sequence[int]) -> list[BookSummary]:
    """
    Load summaries for book_ids, preserving the order of book_ids.

    Unknown ids are skipped. Duplicate ids produce one summary per
    occurrence, so callers can pass candidate lists straight through.
    """
    if not book_ids:
        return []

    books = db.execute(
        select(Book)
        .options(selectinload(Book.genres))
        .where(Book.id.in_(set(book_ids)))
    ).scalars().all()
    stats = get_rating_stats(db, (b.id for b in books))
    by_id = {book.id: to_summary(book, stats.get(book.id)) for book in books}

    return [by_id[book_id] for book_id in book_ids if book_id in by_id]


def get_book(db: Session, book_id: int) -> BookSummary | None:
    """Load a single book summary, or None if it does not exist."""
    found = load_books(db, [book_id])
    return found[0] if found else None


def list_books(
    db: Session,
    limit: int,
    exclude_book_ids: Iterable[int] = (),
) -> list[BookSummary]:
    """
    Load up to `limit` catalog books in id order, skipping excluded ids.

    Used to give the language model a bounded view of the catalog.
    """
    stmt = select(Book.id).order_by(Book.id).limit(limit)
    excluded = set(exclude_book_ids)
    if excluded:
        stmt = stmt.where(Book.id.not_in(excluded))

    book_ids = db.execute(stmt).scalars().all()
    return load_books(db, book_ids)

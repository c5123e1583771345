"""
User Profile Builder

Summarizes a reader's history (reviews and favorites) into the preferences
the recommenders and the AI prompts work from.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models import Book, Review, UserFavorite

logger = logging.getLogger(__name__)

# Rating assumed for readers who have not reviewed anything yet
DEFAULT_AVERAGE_RATING = 3.5
TOP_GENRES = 5
TOP_AUTHORS = 3
RECENT_BOOKS = 5


@dataclass
class RecentBook:
    """A recently reviewed book, as shown to the language model."""

    title: str
    author: str
    rating: int
    genres: list[str] = field(default_factory=list)


@dataclass
class UserProfile:
    """Derived reading profile of a single user. Never persisted."""

    user_id: int
    average_rating_given: float = DEFAULT_AVERAGE_RATING
    preferred_genres: list[str] = field(default_factory=list)
    preferred_authors: list[str] = field(default_factory=list)
    excluded_book_ids: set[int] = field(default_factory=set)
    reviewed_book_ids: set[int] = field(default_factory=set)
    total_reviews: int = 0
    total_favorites: int = 0
    recent_books: list[RecentBook] = field(default_factory=list)


def _top(counter: Counter, n: int) -> list[str]:
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counter.items(), key=lambda item: item[1], reverse=True)
    return [name for name, _ in ranked[:n]]


def build_user_profile(db: Session, user_id: int) -> UserProfile:
    """
    Build the reading profile for a user.

    Algorithm:
    1. Fetch all reviews (newest first) and favorites, with book genres
    2. Tally genres and authors over reviews, then favorites; a book that is
       both reviewed and favorited counts twice
    3. Keep the top 5 genres and top 3 authors by count
    4. Average the given ratings (3.5 for users without reviews)
    5. Exclude every reviewed or favorited book from future recommendations

    A user that does not exist simply yields an empty profile.

    Args:
        db: Database session
        user_id: ID of the user to profile

    Returns:
        UserProfile for the user
    """
    reviews = db.execute(
        select(Review)
        .options(selectinload(Review.book).selectinload(Book.genres))
        .where(Review.user_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    ).scalars().all()

    favorites = db.execute(
        select(UserFavorite)
        .options(selectinload(UserFavorite.book).selectinload(Book.genres))
        .where(UserFavorite.user_id == user_id)
        .order_by(UserFavorite.created_at.desc(), UserFavorite.id.desc())
    ).scalars().all()

    genre_counts: Counter = Counter()
    author_counts: Counter = Counter()
    for item in [*reviews, *favorites]:
        for genre in item.book.genres:
            genre_counts[genre.name] += 1
        author_counts[item.book.author] += 1

    if reviews:
        average_given = sum(r.rating for r in reviews) / len(reviews)
    else:
        average_given = DEFAULT_AVERAGE_RATING

    reviewed_ids = {r.book_id for r in reviews}
    profile = UserProfile(
        user_id=user_id,
        average_rating_given=average_given,
        preferred_genres=_top(genre_counts, TOP_GENRES),
        preferred_authors=_top(author_counts, TOP_AUTHORS),
        excluded_book_ids=reviewed_ids | {f.book_id for f in favorites},
        reviewed_book_ids=reviewed_ids,
        total_reviews=len(reviews),
        total_favorites=len(favorites),
        recent_books=[
            RecentBook(
                title=r.book.title,
                author=r.book.author,
                rating=r.rating,
                genres=[g.name for g in r.book.genres],
            )
            for r in reviews[:RECENT_BOOKS]
        ],
    )

    logger.debug(
        f"Profile for user {user_id}: {profile.total_reviews} reviews, "
        f"{profile.total_favorites} favorites, genres={profile.preferred_genres}"
    )
    return profile

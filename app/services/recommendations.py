"""
Recommendations Service

Provides book recommendations using multiple strategies:
1. Collaborative filtering: books liked by readers with similar taste
2. Content-based: books sharing a genre with a given book
3. Trending: books with reviews inside a trailing window
4. Genre and new releases: simple catalog slices

Features:
- Personalized recommendations blending AI picks (60%) with collaborative
  filtering (40%)
- Trending fallback whenever the AI stage is unavailable
- Ratings always aggregated from current reviews (no caching)

Every scorer returns a list of Recommendation objects; an empty list means
"no signal", never an error.
"""

import logging
import math
from datetime import UTC, datetime, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import Book, Review, book_genres
from app.services.ai import AIUnavailable, get_ai_recommendations, get_ai_similar_books
from app.services.catalog import Recommendation, load_books
from app.services.gemini import GeminiClient
from app.services.profile import build_user_profile

logger = logging.getLogger(__name__)
settings = get_settings()

AI_SHARE = 0.6
COLLABORATIVE_SHARE = 0.4

# Users must overlap on this many reviewed books (or on all of them, for
# readers with fewer reviews) to count as "similar"
SIMILAR_USER_OVERLAP = 3
LIKED_RATING = 4

COLLABORATIVE_REASON = "Recommended by users with similar taste"
CONTENT_REASON = "Similar genre and themes"
TRENDING_REASON = "Trending based on recent reviews"
TRENDING_PLATFORM_REASON = "Trending recently"
GENRE_REASON = "Popular in this genre"
NEW_RELEASE_REASON = "Recently published"


# =============================================================================
# Collaborative Filtering
# =============================================================================


def get_collaborative_recommendations(
    db: Session,
    user_id: int,
    limit: int = 10,
) -> list[Recommendation]:
    """
    Recommend books that readers with similar taste rated highly.

    Algorithm:
    1. Get the books the user has reviewed (no reviews -> no signal)
    2. Find similar users: other users who reviewed at least
       min(3, number of reviewed books) of the same books
    3. Take their 4+ star reviews of books the user has not reviewed or
       favorited (at most 2 * limit, in review order)
    4. Score each as rating * (book average rating / 5)
    5. Rank by score and truncate

    Query failures are logged and yield an empty list, so callers treat them
    like a user without collaborative signal.

    Args:
        db: Database session
        user_id: ID of the user to get recommendations for
        limit: Maximum number of recommendations

    Returns:
        Recommendations ranked by score (may contain repeated books when
        several similar users liked the same one)
    """
    try:
        profile = build_user_profile(db, user_id)
        reviewed = profile.reviewed_book_ids
        if not reviewed:
            logger.debug(f"User {user_id} has no reviews, no collaborative signal")
            return []

        overlap = min(SIMILAR_USER_OVERLAP, len(reviewed))
        similar_user_ids = db.execute(
            select(Review.user_id)
            .where(Review.book_id.in_(reviewed))
            .where(Review.user_id != user_id)
            .group_by(Review.user_id)
            .having(func.count(Review.id) >= overlap)
        ).scalars().all()

        if not similar_user_ids:
            logger.debug(f"No similar users for user {user_id}")
            return []

        candidates = db.execute(
            select(Review.book_id, Review.rating)
            .where(Review.user_id.in_(similar_user_ids))
            .where(Review.rating >= LIKED_RATING)
            .where(Review.book_id.not_in(profile.excluded_book_ids))
            .order_by(Review.id)
            .limit(limit * 2)
        ).all()

        books = {b.id: b for b in load_books(db, [c.book_id for c in candidates])}
    except SQLAlchemyError as e:
        logger.error(f"Collaborative recommendations failed for user {user_id}: {e}")
        return []

    scored = []
    for book_id, rating in candidates:
        book = books.get(book_id)
        if book is None:
            continue
        scored.append(Recommendation.from_book(
            book,
            reason=COLLABORATIVE_REASON,
            confidence=0.7,
            score=rating * (book.average_rating / 5),
        ))

    # sorted() is stable: equal scores keep candidate order
    scored.sort(key=lambda rec: rec.score, reverse=True)
    return scored[:limit]


# =============================================================================
# Content-Based Recommendations
# =============================================================================


def get_content_based_similar_books(
    db: Session,
    book_id: int,
    limit: int = 5,
) -> list[Recommendation]:
    """
    Books sharing at least one genre with the given book, newest first.

    Ordering is by when the book was added to the catalog, not by how many
    genres overlap. A book without genres (or an unknown book) has no
    similar books.
    """
    try:
        genre_ids = db.execute(
            select(book_genres.c.genre_id).where(book_genres.c.book_id == book_id)
        ).scalars().all()
        if not genre_ids:
            return []

        sharing_genre = select(book_genres.c.book_id).where(
            book_genres.c.genre_id.in_(genre_ids)
        )
        book_ids = db.execute(
            select(Book.id)
            .where(Book.id.in_(sharing_genre))
            .where(Book.id != book_id)
            .order_by(Book.created_at.desc(), Book.id.desc())
            .limit(limit)
        ).scalars().all()

        books = load_books(db, book_ids)
    except SQLAlchemyError as e:
        logger.error(f"Similar books query failed for book {book_id}: {e}")
        raise

    return [
        Recommendation.from_book(book, reason=CONTENT_REASON, confidence=0.6)
        for book in books
    ]


def get_similar_books(
    db: Session,
    book_id: int,
    limit: int = 5,
    client: GeminiClient | None = None,
) -> list[Recommendation]:
    """
    Similar books for a book page.

    Asks the AI first; when it is unavailable or matches nothing in the
    catalog, falls back to the content-based scorer.
    """
    if client is not None:
        outcome = get_ai_similar_books(db, book_id, limit, client)
        if isinstance(outcome, AIUnavailable):
            logger.debug(f"Using content-based similar books for {book_id}: {outcome.reason}")
        elif outcome.books:
            return outcome.books[:limit]

    return get_content_based_similar_books(db, book_id, limit)


# =============================================================================
# Trending, Genre & New Releases
# =============================================================================


def get_trending_books(
    db: Session,
    limit: int = 10,
    window_days: int | None = None,
    reason: str = TRENDING_REASON,
    now: datetime | None = None,
) -> list[Recommendation]:
    """
    Books reviewed within the trailing window, most reviewed first.

    For each book:
        trending_score = (recent_reviews * 2 + total_reviews) / (total_reviews + 1)

    The score is attached as metadata only. Selection and order use the
    all-time review count, so a book with many old reviews outranks one
    with fewer but more recent reviews.

    Args:
        db: Database session
        limit: Maximum number of books
        window_days: Lookback window (defaults to TRENDING_WINDOW_DAYS)
        reason: Reason text attached to every result
        now: Reference time for the window (defaults to the current time)

    Returns:
        Trending books as recommendations
    """
    if window_days is None:
        window_days = settings.trending_window_days
    cutoff = (now or datetime.now(UTC)) - timedelta(days=window_days)

    total = func.count(Review.id)
    recent = func.sum(case((Review.created_at >= cutoff, 1), else_=0))

    try:
        rows = db.execute(
            select(Review.book_id, total, recent)
            .group_by(Review.book_id)
            .having(recent > 0)
            .order_by(total.desc(), Review.book_id)
            .limit(limit)
        ).all()

        books = load_books(db, [row[0] for row in rows])
    except SQLAlchemyError as e:
        logger.error(f"Trending books query failed: {e}")
        raise

    counts = {book_id: (total_count, recent_count) for book_id, total_count, recent_count in rows}
    results = []
    for book in books:
        total_count, recent_count = counts[book.id]
        results.append(Recommendation.from_book(
            book,
            reason=reason,
            confidence=0.8,
            trending_score=(recent_count * 2 + total_count) / (total_count + 1),
        ))

    return results


def get_genre_recommendations(
    db: Session,
    genre_id: int,
    limit: int = 10,
) -> list[Recommendation]:
    """Most reviewed books of a genre; unknown genres have none."""
    try:
        book_ids = db.execute(
            select(Book.id)
            .join(book_genres, book_genres.c.book_id == Book.id)
            .outerjoin(Review, Review.book_id == Book.id)
            .where(book_genres.c.genre_id == genre_id)
            .group_by(Book.id)
            .order_by(func.count(Review.id).desc(), Book.id)
            .limit(limit)
        ).scalars().all()

        books = load_books(db, book_ids)
    except SQLAlchemyError as e:
        logger.error(f"Genre recommendations query failed for genre {genre_id}: {e}")
        raise

    return [
        Recommendation.from_book(book, reason=GENRE_REASON, confidence=0.7)
        for book in books
    ]


def get_new_releases(
    db: Session,
    limit: int = 10,
    current_year: int | None = None,
) -> list[Recommendation]:
    """
    Books published this year or last year, newest publication first.

    Args:
        db: Database session
        limit: Maximum number of books
        current_year: Reference year (defaults to the current year)

    Returns:
        Newly published books as recommendations
    """
    current_year = current_year or datetime.now(UTC).year

    try:
        book_ids = db.execute(
            select(Book.id)
            .where(Book.published_year >= current_year - 1)
            .order_by(Book.published_year.desc(), Book.id)
            .limit(limit)
        ).scalars().all()

        books = load_books(db, book_ids)
    except SQLAlchemyError as e:
        logger.error(f"New releases query failed: {e}")
        raise

    return [
        Recommendation.from_book(
            book,
            reason=NEW_RELEASE_REASON,
            confidence=0.6,
            published_year=book.published_year,
        )
        for book in books
    ]


# =============================================================================
# Merging
# =============================================================================


def deduplicate_recommendations(
    recommendations: list[Recommendation],
) -> list[Recommendation]:
    """Drop repeated books, keeping the first occurrence of each."""
    seen: set[int] = set()
    unique = []
    for rec in recommendations:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        unique.append(rec)
    return unique


def generate_recommendations(
    db: Session,
    user_id: int,
    limit: int = 10,
    client: GeminiClient | None = None,
) -> list[Recommendation]:
    """
    Personalized recommendations for a user.

    Algorithm:
    1. Ask the AI for ceil(limit * 0.6) books
    2. If the AI is unavailable, return the trending books instead (no
       partial blend)
    3. Otherwise append ceil(limit * 0.4) collaborative recommendations
    4. Deduplicate by book (first occurrence wins) and truncate to limit

    Args:
        db: Database session
        user_id: ID of the user to get recommendations for
        limit: Maximum number of recommendations
        client: Gemini client (AI is treated as unavailable when None)

    Returns:
        Up to `limit` recommendations
    """
    ai_limit = math.ceil(limit * AI_SHARE)
    if client is None:
        outcome = AIUnavailable("No AI client")
    else:
        outcome = get_ai_recommendations(db, user_id, ai_limit, client)

    if isinstance(outcome, AIUnavailable):
        logger.warning(
            f"AI recommendations unavailable for user {user_id}, "
            f"falling back to trending: {outcome.reason}"
        )
        return get_trending_books(db, limit)

    collaborative = get_collaborative_recommendations(
        db, user_id, math.ceil(limit * COLLABORATIVE_SHARE)
    )

    merged = deduplicate_recommendations([*outcome.books[:ai_limit], *collaborative])
    return merged[:limit]

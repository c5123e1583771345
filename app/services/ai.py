"""
AI Recommendation Service

Language-model backed features built on the Gemini client:

1. Personalized recommendations from a reader's profile
2. Similar-book suggestions for a single book
3. Free-text query recommendations with a keyword fallback
4. Review analysis and book description generation

The model only ever sees a bounded slice of the catalog and its answers
are matched back to real catalog books by exact (case-insensitive) title
and author, so it can never recommend a book we do not carry.

Calls that feed the recommendation merger return an explicit outcome
(AIRecommendations or AIUnavailable) instead of raising, which keeps the
fallback path visible at the call site.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import Review
from app.services.catalog import BookSummary, Recommendation, get_book, list_books
from app.services.gemini import AIServiceError, GeminiClient
from app.services.profile import UserProfile, build_user_profile

logger = logging.getLogger(__name__)
settings = get_settings()

AI_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.7
VALID_SENTIMENTS = {"positive", "negative", "neutral"}


# =============================================================================
# Outcomes
# =============================================================================


@dataclass
class AIRecommendations:
    """Books the model suggested, already matched to the catalog."""

    books: list[Recommendation]
    explanation: str
    insights: str | None = None


@dataclass
class AIUnavailable:
    """The model could not be used; callers switch to their fallback."""

    reason: str


AIOutcome = Union[AIRecommendations, AIUnavailable]


@dataclass
class QueryRecommendations:
    recommendations: list[Recommendation]
    explanation: str
    query: str
    total_found: int


@dataclass
class PersonalizedRecommendations:
    recommendations: list[Recommendation]
    explanation: str
    profile_insights: str
    profile: UserProfile
    query: str
    total_found: int


@dataclass
class ReviewAnalysis:
    sentiment: str = "neutral"
    themes: list[str] = field(default_factory=list)
    quality: float = 0.5
    summary: str = "Analysis unavailable"


# =============================================================================
# Prompt Helpers
# =============================================================================


def _catalog_line(book: BookSummary) -> str:
    rating = f"{book.average_rating:.1f}" if book.total_reviews else "No ratings"
    genres = ", ".join(book.genres)
    return (
        f'- "{book.title}" by {book.author} ({genres}) - Rating: {rating}/5 '
        f"({book.total_reviews} reviews) - {book.description or 'No description'}"
    )


def build_personalized_prompt(
    profile: UserProfile,
    catalog: list[BookSummary],
    limit: int,
    query: str | None = None,
) -> str:
    """Prompt asking for `limit` picks from `catalog` that fit the profile."""
    recent = "\n".join(
        f'  * "{b.title}" by {b.author} ({b.rating}/5) - {", ".join(b.genres)}'
        for b in profile.recent_books
    )
    books = "\n".join(_catalog_line(b) for b in catalog)

    return f"""You are a personalized book recommendation expert. Based on the user's reading history, preferences, and their current query, recommend exactly {limit} books.

User Query: "{query or 'Recommend books based on my preferences'}"

User Profile:
- Total Reviews: {profile.total_reviews}
- Total Favorites: {profile.total_favorites}
- Average Rating Given: {profile.average_rating_given:.1f}/5
- Preferred Genres: {", ".join(profile.preferred_genres)}
- Preferred Authors: {", ".join(profile.preferred_authors)}
- Recent Books Read:
{recent}

Available Books in Database (excluding user's already read/favorited books):
{books}

Please analyze the user's profile and recommend {limit} books that:
1. Match their genre preferences
2. Are by authors they might like
3. Have ratings similar to what they typically give
4. Match their query if provided
5. Are different from what they've already read

Respond with JSON in this exact format:
{{
  "recommendations": [
    {{
      "title": "Exact Book Title",
      "author": "Exact Author Name",
      "reason": "Why this book matches their preferences and query",
      "confidence": 0.9
    }}
  ],
  "explanation": "Brief explanation of why these books were selected based on their profile",
  "profileInsights": "What we learned about their reading preferences"
}}"""


def build_similar_prompt(
    book: BookSummary,
    reviews: list[str],
    catalog: list[BookSummary],
    limit: int,
) -> str:
    """Prompt asking for `limit` books from `catalog` similar to `book`."""
    books = "\n".join(_catalog_line(b) for b in catalog)
    sample_reviews = "\n".join(reviews) or "No reviews yet"

    return f"""Find books similar to "{book.title}" by {book.author}.

Book Details:
- Title: {book.title}
- Author: {book.author}
- Genres: {", ".join(book.genres)}
- Description: {book.description or 'No description available'}

Sample Reviews:
{sample_reviews}

Available Books in Database:
{books}

Please suggest {limit} similar books from the list above that share:
1. Similar themes or genres
2. Comparable writing style or tone
3. Similar target audience
4. Related subject matter

Respond with JSON:
{{
  "similarBooks": [
    {{
      "title": "Book Title",
      "author": "Author Name",
      "reason": "Why this book is similar",
      "similarityScore": 0.9
    }}
  ],
  "explanation": "Brief explanation of similarity criteria"
}}"""


def build_query_prompt(query: str, catalog: list[BookSummary], limit: int) -> str:
    """Prompt asking for `limit` books from `catalog` matching a free-text query."""
    books = "\n".join(_catalog_line(b) for b in catalog)

    return f"""You are a book recommendation expert. Based on the user's query and the available books in our database, recommend exactly {limit} books.

User Query: "{query}"

Available Books in Database:
{books}

Please analyze the user's query and recommend {limit} books that best match their request. Consider:
1. Genre preferences mentioned
2. Reading style preferences (e.g., "fast-paced", "character-driven")
3. Rating requirements
4. Author preferences
5. Any specific themes or topics mentioned

Respond with JSON in this exact format:
{{
  "recommendations": [
    {{
      "title": "Exact Book Title",
      "author": "Exact Author Name",
      "reason": "Why this book matches their request",
      "confidence": 0.9
    }}
  ],
  "explanation": "Brief explanation of why these books were selected"
}}"""


# =============================================================================
# Matching Model Output to the Catalog
# =============================================================================


def _normalize(value: Any) -> str:
    return str(value or "").strip().lower()


def _confidence(value: Any, default: float) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    if confidence <= 0:
        return default
    return min(confidence, 1.0)


def match_suggestions(
    suggestions: Any,
    catalog: list[BookSummary],
    default_reason: str,
    confidence_key: str = "confidence",
) -> list[Recommendation]:
    """
    Map model suggestions onto catalog books.

    A suggestion matches when both title and author equal a catalog book's,
    ignoring case and surrounding whitespace. Unmatched suggestions and
    repeated books are dropped; model order is kept.
    """
    if not isinstance(suggestions, list):
        return []

    index = {(_normalize(b.title), _normalize(b.author)): b for b in catalog}
    matched: list[Recommendation] = []
    seen: set[int] = set()

    for suggestion in suggestions:
        if not isinstance(suggestion, dict):
            continue
        book = index.get((_normalize(suggestion.get("title")), _normalize(suggestion.get("author"))))
        if book is None or book.id in seen:
            continue
        seen.add(book.id)
        matched.append(Recommendation.from_book(
            book,
            reason=str(suggestion.get("reason") or default_reason),
            confidence=_confidence(suggestion.get(confidence_key), AI_CONFIDENCE),
        ))

    return matched


def preference_matches(
    profile: UserProfile,
    catalog: list[BookSummary],
    exclude_book_ids: set[int] | None = None,
) -> list[Recommendation]:
    """
    Catalog books sharing a preferred genre or author.

    Genre matches come first, then books with more reviews.
    """
    exclude_book_ids = exclude_book_ids or set()
    genres = set(profile.preferred_genres)
    authors = set(profile.preferred_authors)

    def genre_match(book: BookSummary) -> bool:
        return any(g in genres for g in book.genres)

    candidates = [
        b for b in catalog
        if b.id not in exclude_book_ids and (genre_match(b) or b.author in authors)
    ]
    candidates.sort(key=lambda b: (not genre_match(b), -b.total_reviews))

    return [
        Recommendation.from_book(
            b,
            reason="Matches your reading preferences",
            confidence=FALLBACK_CONFIDENCE,
        )
        for b in candidates
    ]


def keyword_matches(
    query: str,
    catalog: list[BookSummary],
    exclude_book_ids: set[int] | None = None,
) -> list[Recommendation]:
    """
    Rank catalog books by how many query keywords they contain.

    Keywords are query words longer than two characters, looked up in the
    title, author and description. Books without any hit still rank (last),
    so the result can always fill a request.
    """
    exclude_book_ids = exclude_book_ids or set()
    keywords = [word for word in query.lower().split() if len(word) > 2]

    scored = []
    for book in catalog:
        if book.id in exclude_book_ids:
            continue
        text = f"{book.title} {book.author} {book.description or ''}".lower()
        scored.append((sum(1 for k in keywords if k in text), book))

    scored.sort(key=lambda item: item[0], reverse=True)

    return [
        Recommendation.from_book(
            book,
            reason=f'Based on your query "{query}", this book matches your interests',
            confidence=FALLBACK_CONFIDENCE,
        )
        for _, book in scored
    ]


# =============================================================================
# Recommendation Outcomes
# =============================================================================


def get_ai_recommendations(
    db: Session,
    user_id: int,
    limit: int,
    client: GeminiClient,
    query: str | None = None,
    profile: UserProfile | None = None,
    catalog: list[BookSummary] | None = None,
) -> AIOutcome:
    """
    Ask the model for personalized picks.

    The catalog shown to the model already excludes every book the user
    reviewed or favorited.

    Args:
        db: Database session
        user_id: User to recommend for
        limit: Maximum number of books to return
        client: Gemini client
        query: Optional free-text wish from the user
        profile: Prebuilt profile (built here when omitted)
        catalog: Prebuilt candidate catalog (loaded here when omitted)

    Returns:
        AIRecommendations, or AIUnavailable when the model cannot be used
    """
    if not client.is_configured:
        return AIUnavailable("Gemini API key is not configured")

    try:
        if profile is None:
            profile = build_user_profile(db, user_id)
        if catalog is None:
            catalog = list_books(db, settings.ai_catalog_size, profile.excluded_book_ids)
    except SQLAlchemyError as e:
        logger.error(f"Could not load reading profile for user {user_id}: {e}")
        return AIUnavailable(f"Profile or catalog read failed: {e}")

    prompt = build_personalized_prompt(profile, catalog, limit, query)
    try:
        payload = client.generate_json(prompt)
    except AIServiceError as e:
        logger.warning(f"AI recommendations unavailable for user {user_id}: {e}")
        return AIUnavailable(str(e))

    books = match_suggestions(
        payload.get("recommendations"),
        catalog,
        default_reason="Recommended for your reading profile",
    )
    explanation = payload.get("explanation") or (
        f"Based on your reading history of {profile.total_reviews} books and preferences "
        f"for {', '.join(profile.preferred_genres)}, here are personalized recommendations."
    )

    return AIRecommendations(
        books=books[:limit],
        explanation=str(explanation),
        insights=payload.get("profileInsights"),
    )


def get_ai_similar_books(
    db: Session,
    book_id: int,
    limit: int,
    client: GeminiClient,
) -> AIOutcome:
    """Ask the model for catalog books similar to `book_id`."""
    if not client.is_configured:
        return AIUnavailable("Gemini API key is not configured")

    book = get_book(db, book_id)
    if book is None:
        return AIUnavailable(f"Book {book_id} not found")

    reviews = db.execute(
        select(Review.review_text)
        .where(Review.book_id == book_id)
        .where(Review.review_text.isnot(None))
        .order_by(Review.created_at.desc())
        .limit(10)
    ).scalars().all()
    catalog = list_books(db, settings.ai_catalog_size, {book_id})

    try:
        payload = client.generate_json(build_similar_prompt(book, list(reviews), catalog, limit))
    except AIServiceError as e:
        logger.warning(f"AI similar books unavailable for book {book_id}: {e}")
        return AIUnavailable(str(e))

    books = match_suggestions(
        payload.get("similarBooks"),
        catalog,
        default_reason="Similar according to AI analysis",
        confidence_key="similarityScore",
    )
    explanation = payload.get("explanation") or (
        f'Books similar to "{book.title}" based on genre, themes, and style.'
    )
    return AIRecommendations(books=books[:limit], explanation=str(explanation))


def get_personalized_ai_recommendations(
    db: Session,
    user_id: int,
    limit: int,
    client: GeminiClient,
    query: str | None = None,
) -> PersonalizedRecommendations:
    """
    Personalized picks topped up with preference matches.

    When the model is unavailable (or matches fewer than `limit` books) the
    remainder comes from catalog books sharing the user's preferred genres
    or authors.
    """
    profile = build_user_profile(db, user_id)
    catalog = list_books(db, settings.ai_catalog_size, profile.excluded_book_ids)

    outcome = get_ai_recommendations(
        db, user_id, limit, client, query=query, profile=profile, catalog=catalog
    )
    books = list(outcome.books) if isinstance(outcome, AIRecommendations) else []

    if len(books) < limit:
        already = {b.id for b in books}
        books.extend(preference_matches(profile, catalog, already)[: limit - len(books)])

    if isinstance(outcome, AIRecommendations):
        explanation = outcome.explanation
        insights = outcome.insights
    else:
        explanation = (
            f"Based on your reading profile, here are {len(books)} personalized recommendations."
        )
        insights = None

    if not insights:
        insights = (
            f"You prefer {', '.join(profile.preferred_genres)} genres and typically rate "
            f"books {profile.average_rating_given:.1f}/5."
        )

    return PersonalizedRecommendations(
        recommendations=books[:limit],
        explanation=explanation,
        profile_insights=insights,
        profile=profile,
        query=query or "Personalized recommendations",
        total_found=len(books),
    )


def recommend_for_query(
    db: Session,
    query: str,
    limit: int,
    client: GeminiClient,
) -> QueryRecommendations:
    """
    Recommend catalog books for a free-text query.

    Model matches come first; the rest is filled by keyword overlap.
    """
    catalog = list_books(db, settings.ai_query_catalog_size)
    matched: list[Recommendation] = []

    try:
        payload = client.generate_json(build_query_prompt(query, catalog, limit))
        matched = match_suggestions(
            payload.get("recommendations"),
            catalog,
            default_reason=f'Matches your request "{query}"',
        )
    except AIServiceError as e:
        logger.warning(f"Gemini AI not available, using keyword recommendations: {e}")

    if len(matched) < limit:
        already = {b.id for b in matched}
        matched.extend(keyword_matches(query, catalog, already)[: limit - len(matched)])

    return QueryRecommendations(
        recommendations=matched[:limit],
        explanation=(
            f'Based on your query "{query}", here are {len(matched)} book recommendations.'
        ),
        query=query,
        total_found=len(matched),
    )


# =============================================================================
# Text Features
# =============================================================================


def analyze_review(review_text: str, client: GeminiClient) -> ReviewAnalysis:
    """Sentiment, themes and quality of a review; neutral when AI fails."""
    prompt = f"""Analyze this book review and provide insights:

Review: "{review_text}"

Please analyze:
1. Sentiment (positive, negative, or neutral)
2. Main themes mentioned
3. Overall quality assessment (0-1 score)
4. Brief summary

Respond with JSON:
{{
  "sentiment": "positive|negative|neutral",
  "themes": ["theme1", "theme2"],
  "quality": 0.8,
  "summary": "Brief summary of the review"
}}"""

    try:
        analysis = client.generate_json(prompt)
    except AIServiceError as e:
        logger.warning(f"Review analysis failed: {e}")
        return ReviewAnalysis()

    sentiment = _normalize(analysis.get("sentiment"))
    themes = analysis.get("themes")
    return ReviewAnalysis(
        sentiment=sentiment if sentiment in VALID_SENTIMENTS else "neutral",
        themes=[str(t) for t in themes] if isinstance(themes, list) else [],
        quality=_confidence(analysis.get("quality"), 0.5),
        summary=str(analysis.get("summary") or "Review analysis completed"),
    )


def generate_book_description(
    title: str,
    author: str,
    client: GeminiClient,
    existing_description: str | None = None,
) -> str:
    """Write (or improve) a book description; keeps the old one when AI fails."""
    if existing_description:
        task = f"Current description: {existing_description}. Please improve it."
    else:
        task = "Create a new description."
    prompt = f'Generate a compelling book description for "{title}" by {author}. {task}'

    try:
        return client.generate_text(prompt).strip()
    except AIServiceError as e:
        logger.warning(f"Book description generation failed: {e}")
        return existing_description or "Description unavailable"

"""
Recommendations Router

Provides book recommendation endpoints:
- Personalized recommendations (AI blend with collaborative filtering)
- Similar books (AI, falling back to shared genres)
- Trending books
- Genre and new-release lists
- Review analysis and description generation helpers

Endpoints:
- GET /recommendations - Personalized recommendations (auth required)
- GET /recommendations/similar/{book_id} - Books similar to a given book
- GET /recommendations/trending - Books with recent review activity
- GET /recommendations/genre/{genre_id} - Most reviewed books of a genre
- GET /recommendations/new-releases - Books published this or last year
- POST /recommendations/analyze-review - Sentiment/themes of a review (auth)
- POST /recommendations/generate-description - Book blurb (auth)

All list endpoints answer with {"success": true, "data": [...], "count": n}.
"""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.config import get_settings
from app.dependencies import AIClient, CurrentUser, DbSession
from app.schemas.recommendation import (
    DescriptionRequest,
    DescriptionResponse,
    RecommendationItem,
    RecommendationListResponse,
    ReviewAnalysisRequest,
    ReviewAnalysisResponse,
)
from app.services.ai import analyze_review, generate_book_description
from app.services.catalog import Recommendation
from app.services.rate_limiter import AI_RATE_LIMIT, limiter
from app.services.recommendations import (
    TRENDING_PLATFORM_REASON,
    generate_recommendations,
    get_genre_recommendations,
    get_new_releases,
    get_similar_books,
    get_trending_books,
)

settings = get_settings()

LimitParam = Annotated[
    int,
    Query(
        description="Maximum number of books to return",
        ge=1,
        le=50,
    )
]


def to_list_response(recommendations: list[Recommendation]) -> RecommendationListResponse:
    """Wrap scorer output in the list envelope."""
    items = [RecommendationItem.model_validate(asdict(rec)) for rec in recommendations]
    return RecommendationListResponse(data=items, count=len(items))


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/recommendations",
    tags=["Recommendations"],
)


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=RecommendationListResponse,
    response_model_exclude_none=True,
    summary="Get personalized recommendations",
    description="""
Get personalized book recommendations for the authenticated user.

**Algorithm:**
1. 60% of the list comes from AI picks based on your reading profile
2. 40% comes from collaborative filtering (books liked by readers who
   reviewed the same books as you)
3. Duplicates are removed, keeping the first occurrence

**Fallback:** when the AI is unavailable, trending books are returned.

Books you already reviewed or favorited are never recommended.
""",
)
@limiter.limit(settings.rate_limit_default)
def get_personalized_recommendations(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    client: AIClient,
    limit: LimitParam = 10,
) -> RecommendationListResponse:
    """Get personalized recommendations for the current user."""
    results = generate_recommendations(
        db=db,
        user_id=current_user.id,
        limit=limit,
        client=client,
    )
    return to_list_response(results)


@router.get(
    "/similar/{book_id}",
    response_model=RecommendationListResponse,
    response_model_exclude_none=True,
    summary="Get similar books",
    description="""
Get books similar to a given book.

Asks the AI for similar books from the catalog first; falls back to books
sharing at least one genre, most recently added first. Unknown books and
books without genres yield an empty list.
""",
)
@limiter.limit(settings.rate_limit_default)
def get_similar(
    request: Request,
    book_id: int,
    db: DbSession,
    client: AIClient,
    limit: LimitParam = 5,
) -> RecommendationListResponse:
    """Get books similar to a given book."""
    results = get_similar_books(db=db, book_id=book_id, limit=limit, client=client)
    return to_list_response(results)


@router.get(
    "/trending",
    response_model=RecommendationListResponse,
    response_model_exclude_none=True,
    summary="Get trending books",
    description="""
Books reviewed within the trending window (30 days by default), ordered by
their total number of reviews.

Each item carries a trendingScore of
(recentReviews * 2 + totalReviews) / (totalReviews + 1) for display.
""",
)
@limiter.limit(settings.rate_limit_default)
def get_trending(
    request: Request,
    db: DbSession,
    limit: LimitParam = 10,
) -> RecommendationListResponse:
    """Get trending books."""
    results = get_trending_books(db=db, limit=limit, reason=TRENDING_PLATFORM_REASON)
    return to_list_response(results)


@router.get(
    "/genre/{genre_id}",
    response_model=RecommendationListResponse,
    response_model_exclude_none=True,
    summary="Get popular books in a genre",
    description="Most reviewed books tagged with the genre.",
)
@limiter.limit(settings.rate_limit_default)
def get_genre(
    request: Request,
    genre_id: int,
    db: DbSession,
    limit: LimitParam = 10,
) -> RecommendationListResponse:
    """Get popular books of a genre."""
    results = get_genre_recommendations(db=db, genre_id=genre_id, limit=limit)
    return to_list_response(results)


@router.get(
    "/new-releases",
    response_model=RecommendationListResponse,
    response_model_exclude_none=True,
    summary="Get new releases",
    description="Books published this year or last year, newest first.",
)
@limiter.limit(settings.rate_limit_default)
def get_new(
    request: Request,
    db: DbSession,
    limit: LimitParam = 10,
) -> RecommendationListResponse:
    """Get newly published books."""
    results = get_new_releases(db=db, limit=limit)
    return to_list_response(results)


@router.post(
    "/analyze-review",
    response_model=ReviewAnalysisResponse,
    summary="Analyze a review",
    description="""
Sentiment, main themes, a 0-1 quality score and a short summary of a review.

Returns a neutral analysis when the AI is unavailable.
""",
)
@limiter.limit(AI_RATE_LIMIT)
def post_analyze_review(
    request: Request,
    body: ReviewAnalysisRequest,
    current_user: CurrentUser,
    client: AIClient,
) -> ReviewAnalysisResponse:
    """Analyze review text with the AI."""
    analysis = analyze_review(body.review_text, client)
    return ReviewAnalysisResponse(data=asdict(analysis))


@router.post(
    "/generate-description",
    response_model=DescriptionResponse,
    summary="Generate a book description",
    description="""
Write a description for a book, or improve the existing one.

When the AI is unavailable the existing description is returned unchanged
(or "Description unavailable" if there is none).
""",
)
@limiter.limit(AI_RATE_LIMIT)
def post_generate_description(
    request: Request,
    body: DescriptionRequest,
    current_user: CurrentUser,
    client: AIClient,
) -> DescriptionResponse:
    """Generate a book description with the AI."""
    description = generate_book_description(
        body.title,
        body.author,
        client,
        existing_description=body.existing_description,
    )
    return DescriptionResponse(data={"description": description})

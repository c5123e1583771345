"""
AI Router

Free-text and profile-driven book recommendations backed by Gemini.

Endpoints:
- POST /ai/recommendations - Books matching a free-text request
- POST /ai/recommendations/personalized - Profile-based picks (auth required)
- GET /ai/status - Whether the AI is configured

Both recommendation endpoints keep working without the AI: free-text
requests fall back to keyword matching and personalized requests to books
in the reader's preferred genres and authors.
"""

from dataclasses import asdict

from fastapi import APIRouter, Request

from app.config import get_settings
from app.dependencies import AIClient, CurrentUser, DbSession
from app.schemas.recommendation import (
    AIStatusResponse,
    PersonalizedRequest,
    PersonalizedResponse,
    ProfileSummary,
    QueryRecommendationRequest,
    QueryRecommendationResponse,
    RecommendationItem,
)
from app.services.ai import get_personalized_ai_recommendations, recommend_for_query
from app.services.rate_limiter import AI_RATE_LIMIT, limiter

settings = get_settings()

router = APIRouter(
    prefix="/ai",
    tags=["AI"],
)


@router.post(
    "/recommendations",
    response_model=QueryRecommendationResponse,
    response_model_exclude_none=True,
    summary="Recommend books for a request",
    description="""
Describe what you want to read ("fast-paced sci-fi with strong characters")
and get matching books from the catalog.

Gemini picks come first; remaining slots are filled with books whose title,
author or description contain words from your request.
""",
)
@limiter.limit(AI_RATE_LIMIT)
def post_query_recommendations(
    request: Request,
    body: QueryRecommendationRequest,
    db: DbSession,
    client: AIClient,
) -> QueryRecommendationResponse:
    """Recommend books for a free-text query."""
    result = recommend_for_query(db, body.query.strip(), body.limit, client)

    return QueryRecommendationResponse(data={
        "recommendations": [
            RecommendationItem.model_validate(asdict(rec)) for rec in result.recommendations
        ],
        "explanation": result.explanation,
        "query": result.query,
        "total_found": result.total_found,
    })


@router.post(
    "/recommendations/personalized",
    response_model=PersonalizedResponse,
    response_model_exclude_none=True,
    summary="Personalized AI recommendations",
    description="""
Recommendations built from your reviews and favorites, optionally steered
by a free-text query. The response includes the reading profile they were
based on.
""",
)
@limiter.limit(AI_RATE_LIMIT)
def post_personalized_recommendations(
    request: Request,
    body: PersonalizedRequest,
    db: DbSession,
    current_user: CurrentUser,
    client: AIClient,
) -> PersonalizedResponse:
    """Personalized recommendations for the current user."""
    result = get_personalized_ai_recommendations(
        db,
        current_user.id,
        body.limit,
        client,
        query=body.query,
    )
    profile = result.profile

    return PersonalizedResponse(data={
        "recommendations": [
            RecommendationItem.model_validate(asdict(rec)) for rec in result.recommendations
        ],
        "explanation": result.explanation,
        "profile_insights": result.profile_insights,
        "user_profile": ProfileSummary(
            total_reviews=profile.total_reviews,
            total_favorites=profile.total_favorites,
            average_rating_given=profile.average_rating_given,
            preferred_genres=profile.preferred_genres,
            preferred_authors=profile.preferred_authors,
        ),
        "query": result.query,
        "total_found": result.total_found,
    })


@router.get(
    "/status",
    response_model=AIStatusResponse,
    summary="AI availability",
)
def get_ai_status(client: AIClient) -> AIStatusResponse:
    """Report whether Gemini is configured."""
    if client.is_configured:
        message = "Gemini AI is configured and ready"
    else:
        message = "Gemini AI is not configured, using fallback recommendations"

    return AIStatusResponse(
        available=client.is_configured,
        model=settings.gemini_model,
        message=message,
    )

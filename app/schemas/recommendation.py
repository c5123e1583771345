"""
Recommendation Pydantic Schemas

Request/response models for the recommendation and AI endpoints.

Responses use camelCase keys (averageRating, totalReviews, ...) because
existing web and mobile clients read those names. Optional fields that are
None are left out of the JSON entirely (routes set
response_model_exclude_none=True).

Schemas:
- RecommendationItem: One recommended book
- RecommendationListResponse: {success, data, count} envelope
- QueryRecommendationRequest / QueryRecommendationResponse
- PersonalizedRequest / PersonalizedResponse
- ReviewAnalysisRequest / ReviewAnalysisResponse
- DescriptionRequest / DescriptionResponse
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase while accepting snake_case input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Recommendations
# =============================================================================


class RecommendationItem(CamelModel):
    """A recommended book with the reason it was picked."""

    id: int = Field(..., description="Book ID")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Author name")
    cover_image_url: str | None = Field(default=None, description="Cover image URL")
    average_rating: float = Field(..., description="Average rating (0 when unrated)")
    total_reviews: int = Field(..., description="Number of reviews")
    genres: list[str] | None = Field(default=None, description="Genre names")
    reason: str = Field(..., description="Why this book was recommended")
    confidence: float = Field(..., ge=0, le=1, description="Confidence in [0, 1]")
    published_year: int | None = Field(default=None, description="Publication year")
    trending_score: float | None = Field(
        default=None,
        description="Recent-activity score (trending results only)",
    )


class RecommendationListResponse(BaseModel):
    """
    Envelope returned by every recommendation list endpoint.

    Example:
        {"success": true, "data": [...], "count": 3}
    """

    success: bool = True
    data: list[RecommendationItem]
    count: int


# =============================================================================
# AI Query Recommendations
# =============================================================================


class QueryRecommendationRequest(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the reader is looking for",
        examples=["fast-paced science fiction with strong characters"],
    )
    limit: int = Field(default=3, ge=1, le=20)


class QueryRecommendationData(CamelModel):
    recommendations: list[RecommendationItem]
    explanation: str
    query: str
    total_found: int


class QueryRecommendationResponse(BaseModel):
    success: bool = True
    data: QueryRecommendationData


# =============================================================================
# AI Personalized Recommendations
# =============================================================================


class PersonalizedRequest(BaseModel):
    query: str | None = Field(default=None, max_length=500)
    limit: int = Field(default=5, ge=1, le=20)


class ProfileSummary(CamelModel):
    """Reading profile summary returned alongside personalized picks."""

    total_reviews: int
    total_favorites: int
    average_rating_given: float
    preferred_genres: list[str]
    preferred_authors: list[str]


class PersonalizedData(CamelModel):
    recommendations: list[RecommendationItem]
    explanation: str
    profile_insights: str
    user_profile: ProfileSummary
    query: str
    total_found: int


class PersonalizedResponse(BaseModel):
    success: bool = True
    data: PersonalizedData


class AIStatusResponse(CamelModel):
    success: bool = True
    available: bool
    model: str
    message: str


# =============================================================================
# Review Analysis & Descriptions
# =============================================================================


class ReviewAnalysisRequest(CamelModel):
    review_text: str = Field(..., min_length=1, max_length=5000)


class ReviewAnalysisData(BaseModel):
    sentiment: str
    themes: list[str]
    quality: float
    summary: str


class ReviewAnalysisResponse(BaseModel):
    success: bool = True
    data: ReviewAnalysisData


class DescriptionRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=255)
    existing_description: str | None = Field(default=None, max_length=5000)


class DescriptionData(BaseModel):
    description: str


class DescriptionResponse(BaseModel):
    success: bool = True
    data: DescriptionData

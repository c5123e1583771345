"""
Pydantic Schemas Package

This package contains Pydantic models for request/response validation.

Scoring code works on plain dataclasses (see app.services.catalog); schemas
only shape what goes over the wire, so the JSON field names can stay
stable while the services evolve.

Schema Naming Convention:
- XxxRequest: Request body
- XxxResponse: Full response envelope ({"success": ..., "data": ...})
- XxxData / XxxItem: Payload nested inside an envelope
"""

from app.schemas.recommendation import (
    AIStatusResponse,
    DescriptionRequest,
    DescriptionResponse,
    PersonalizedRequest,
    PersonalizedResponse,
    ProfileSummary,
    QueryRecommendationRequest,
    QueryRecommendationResponse,
    RecommendationItem,
    RecommendationListResponse,
    ReviewAnalysisRequest,
    ReviewAnalysisResponse,
)

__all__ = [
    # Recommendation schemas
    "RecommendationItem",
    "RecommendationListResponse",
    # AI schemas
    "QueryRecommendationRequest",
    "QueryRecommendationResponse",
    "PersonalizedRequest",
    "PersonalizedResponse",
    "ProfileSummary",
    "AIStatusResponse",
    # Text feature schemas
    "ReviewAnalysisRequest",
    "ReviewAnalysisResponse",
    "DescriptionRequest",
    "DescriptionResponse",
]

"""
API Routers Package

This package contains FastAPI routers that handle API endpoints.

Router Structure:
- recommendations.py: /api/v1/recommendations/* endpoints
- ai.py: /api/v1/ai/* endpoints

Each router is imported and registered in main.py.
"""

from app.routers.ai import router as ai_router
from app.routers.recommendations import router as recommendations_router

__all__ = [
    "recommendations_router",
    "ai_router",
]

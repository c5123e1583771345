"""
Book Review API Application Package

Recommendation service of the Book Review platform.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- main.py: FastAPI application factory and configuration
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Recommendation logic, Gemini client, security, rate limiting
"""

__version__ = "0.1.0"

"""
Services Package

This package contains business logic services that are:
- Separate from HTTP handling (routers)
- Reusable across different parts of the application
- Easier to test in isolation

Current services:
- catalog.py: Book summaries with rating aggregates computed from reviews
- profile.py: Reading profile (preferred genres/authors, excluded books)
- recommendations.py: Scorers (collaborative, content, trending, genre,
  new releases) and the personalized merger
- ai.py: AI-backed recommendations, review analysis and descriptions
- gemini.py: Google Gemini client
- rate_limiter.py: Rate limiting with slowapi and Redis backend
- security.py: Password hashing and JWT utilities
"""

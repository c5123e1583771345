"""
Test Suite for the Book Review API

Test Organization:
- conftest.py: Shared fixtures (test database, client, fake Gemini, factories)
- test_catalog.py: Rating aggregation and book loading
- test_profile.py: Reading profile builder
- test_recommendation_service.py: Scorers and the personalized merger
- test_ai.py: AI recommendation service
- test_gemini.py: Gemini client
- test_recommendations.py: /api/v1/recommendations endpoints
- test_ai_routes.py: /api/v1/ai endpoints

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_recommendation_service.py

    # Run with verbose output
    pytest -v
"""
